"""
scripts/ingest_hpo.py — Parse hp.obo and phenotype.hpoa, load HPO terms
(with parents and annotation frequencies) and disease profiles into MongoDB.

Disease profiles are what the finder uses as its prototype pool.

Usage:  python -m scripts.ingest_hpo
"""

from __future__ import annotations

import sys

import pronto

# Ensure project root is importable
sys.path.insert(0, ".")

from core.config import HPO_OBO_PATH, HPOA_PATH
from core.database import close_client, get_db
import hpo_functions


def main() -> None:
    """Parse hp.obo → compute propagated term frequencies → insert HPO terms
    and disease profiles into MongoDB."""

    db = get_db()

    # ------------------------------------------------------------------
    # 1. Load ontology
    # ------------------------------------------------------------------
    print("Loading ontology from", HPO_OBO_PATH, "...")
    ontology = pronto.Ontology(HPO_OBO_PATH)

    # ------------------------------------------------------------------
    # 2. Term frequencies from disease annotations
    # ------------------------------------------------------------------
    print("Reading disease annotations from", HPOA_PATH, "...")
    disease_to_hpo, disease_to_name = hpo_functions.read_disease_annotations(HPOA_PATH)

    print("Computing propagated term frequencies...")
    frequencies = hpo_functions.hpo_term_frequencies(
        disease_to_hpo,
        lambda t: (sup.id for sup in ontology[t].superclasses(with_self=False)),
    )
    default_freq = hpo_functions.unannotated_frequency(disease_to_hpo)

    # ------------------------------------------------------------------
    # 3. Build HPO term documents
    # ------------------------------------------------------------------
    print("Extracting HPO terms...")
    term_docs: list[dict] = []

    for term in ontology.terms():
        tid = term.id
        if not tid.startswith("HP:") or term.obsolete:
            continue

        parents = [sup.id for sup in term.superclasses(distance=1, with_self=False)]
        freq = frequencies.get(tid, default_freq)

        term_docs.append({
            "_id": tid,
            "label": term.name,
            "definition": str(term.definition) if term.definition else None,
            "synonyms": [s.description for s in term.synonyms],
            "parents": parents,
            "frequency": freq,
            "ic_score": hpo_functions.information_content(freq),
        })

    print(f"  -> {len(term_docs)} HP terms extracted "
          f"({len(frequencies)} with annotations)")

    print("Dropping & inserting hpo_terms collection...")
    db["hpo_terms"].drop()
    if term_docs:
        db["hpo_terms"].insert_many(term_docs)

    # ------------------------------------------------------------------
    # 4. Disease profiles (prototype pool)
    # ------------------------------------------------------------------
    disease_docs = [
        {
            "_id": disease_id,
            "name": disease_to_name.get(disease_id, ""),
            "hpo_terms": sorted(hpo_set),
        }
        for disease_id, hpo_set in disease_to_hpo.items()
    ]

    print("Dropping & inserting disease_profiles collection...")
    db["disease_profiles"].drop()
    if disease_docs:
        db["disease_profiles"].insert_many(disease_docs)

    print("Creating indexes on hpo_terms...")
    db["hpo_terms"].create_index([("label", "text"), ("synonyms", "text")])

    # ------------------------------------------------------------------
    # 5. Summary
    # ------------------------------------------------------------------
    avg_terms = (
        sum(len(d["hpo_terms"]) for d in disease_docs) / len(disease_docs)
        if disease_docs else 0
    )
    print(f"\n=== Ingestion Summary ===")
    print(f"  HPO terms inserted   : {db['hpo_terms'].count_documents({})}")
    print(f"  Prototypes inserted  : {db['disease_profiles'].count_documents({})}")
    print(f"  Avg HPO terms/disease: {avg_terms:.1f}")
    print("Done.")
    close_client()


if __name__ == "__main__":
    main()
