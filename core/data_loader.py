"""
core/data_loader.py — Startup hydration: build the in-memory ontology.

Called once at startup by whatever hosts the finder.  Either reads the
``hpo_terms`` collection written by ``scripts.ingest_hpo`` or parses the raw
HPO files directly.
"""

from __future__ import annotations

import logging
import time

import hpo_functions
from core.config import HPO_OBO_PATH, HPO_TOP_TERM, HPOA_PATH
from core.ontology import TermHierarchy

logger = logging.getLogger(__name__)


def load_ontology(db, top_term: str | None = HPO_TOP_TERM) -> TermHierarchy:
    """
    Load the HPO hierarchy and term frequencies from MongoDB.

    Parameters
    ----------
    db : pymongo.database.Database
        The MongoDB database handle (from ``core.database.get_db()``).
    top_term : str or None
        Ancestor walks stop below this term.

    Returns
    -------
    TermHierarchy
    """
    t0 = time.time()
    logger.info("Loading HPO terms from MongoDB...")
    projection = {"label": 1, "parents": 1, "frequency": 1, "ic_score": 1}
    hierarchy = TermHierarchy.from_documents(
        db["hpo_terms"].find({}, projection), top_term=top_term
    )
    logger.info("  -> %d HPO terms loaded in %.1fs", len(hierarchy), time.time() - t0)
    return hierarchy


def load_ontology_from_files(
    obo_path: str = HPO_OBO_PATH,
    hpoa_path: str = HPOA_PATH,
    top_term: str | None = HPO_TOP_TERM,
) -> TermHierarchy:
    """
    Parse hp.obo and phenotype.hpoa and build the hierarchy without a database.

    Frequencies are annotation frequencies propagated to ancestors; terms no
    disease is annotated with get ``hpo_functions.unannotated_frequency``.
    """
    t0 = time.time()
    logger.info("Loading HPO ontology from %s (this takes ~5s)...", obo_path)
    ontology = hpo_functions.load_ontology(obo_path)

    disease_to_hpo, _ = hpo_functions.read_disease_annotations(hpoa_path)
    frequencies = hpo_functions.hpo_term_frequencies(
        disease_to_hpo,
        lambda t: (sup.id for sup in ontology[t].superclasses(with_self=False)),
    )
    hierarchy = TermHierarchy.from_pronto(
        ontology,
        frequencies,
        default_frequency=hpo_functions.unannotated_frequency(disease_to_hpo),
        top_term=top_term,
    )
    logger.info("  -> %d HPO terms loaded in %.1fs", len(hierarchy), time.time() - t0)
    return hierarchy
