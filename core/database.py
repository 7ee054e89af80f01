"""
core/database.py — MongoDB singleton connection.

Provides a shared MongoDB client and database handle used by the patient
repository, the ontology loader and the ingestion scripts.
"""

from pymongo import MongoClient
from core.config import MONGODB_URI, DB_NAME


_client: MongoClient | None = None


def get_client() -> MongoClient:
    """Return (and cache) a MongoClient singleton."""
    global _client
    if _client is None:
        if not MONGODB_URI:
            raise RuntimeError("MONGODB_URI is not set in .env")
        _client = MongoClient(MONGODB_URI)
    return _client


def get_db(name: str | None = None):
    """Return the database handle (``DB_NAME`` unless *name* is given)."""
    return get_client()[name or DB_NAME]


def close_client() -> None:
    """Close and forget the cached client (scripts call this on exit)."""
    global _client
    if _client is not None:
        _client.close()
        _client = None
