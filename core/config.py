"""
core/config.py — Single responsibility: load environment variables from .env
and expose them as module-level constants.

Used by the repository adapters, the ingestion scripts and the finder.
"""

from dotenv import load_dotenv
import os

load_dotenv()

MONGODB_URI: str = os.getenv("MONGODB_URI", "")
REDIS_URL: str = os.getenv("REDIS_URL", "")
DB_NAME: str = os.getenv("DB_NAME", "patient_similarity")

# HPO source files (used by scripts.ingest_hpo and load_ontology_from_files)
HPO_OBO_PATH: str = os.getenv("HPO_OBO_PATH", "data/raw/hp.obo")
HPOA_PATH: str = os.getenv("HPOA_PATH", "data/raw/phenotype.hpoa")
HPO_TOP_TERM: str = os.getenv("HPO_TOP_TERM", "HP:0000118")   # Phenotypic abnormality

# Similarity search
SIMILARITY_MAX_WORKERS: int = int(os.getenv("SIMILARITY_MAX_WORKERS", "4"))
SIMILARITY_MIN_SCORE: float = float(os.getenv("SIMILARITY_MIN_SCORE", "0.0"))

# Search audit log (Redis)
SEARCH_LOG_TTL: int = int(os.getenv("SEARCH_LOG_TTL", "3600"))
