#!/usr/bin/env python3
"""
scripts/find_similar.py — Run a similarity search from the command line.

Loads the ontology from MongoDB, searches on behalf of USER and prints the
redacted result summaries as JSON.

Usage:
    python -m scripts.find_similar patient_01 --user demo
    python -m scripts.find_similar patient_01 --user demo --prototypes --top 10
    python -m scripts.find_similar patient_01 --user demo --count
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Ensure project root is on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from core.config import REDIS_URL, SIMILARITY_MAX_WORKERS
from core.data_loader import load_ontology
from core.database import close_client, get_db
from core.patient_repository import MongoPatientRepository
from core.search_log import SearchLog
from similarity.finder import SimilarPatientsFinder

# ── Logging ──────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("find_similar")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Find patients similar to a reference patient")
    parser.add_argument("patient_id", help="reference patient id")
    parser.add_argument("--user", required=True, help="calling user (must own the reference)")
    parser.add_argument("--prototypes", action="store_true", help="search the prototype pool instead")
    parser.add_argument("--count", action="store_true", help="print only the number of similar patients")
    parser.add_argument("--top", type=int, default=20, help="number of results to print")
    parser.add_argument("--workers", type=int, default=SIMILARITY_MAX_WORKERS)
    args = parser.parse_args(argv)

    db = get_db()
    repository = MongoPatientRepository(db)
    finder = SimilarPatientsFinder(
        repository,
        load_ontology(db),
        user=args.user,
        max_workers=args.workers,
        search_log=SearchLog(REDIS_URL) if REDIS_URL else None,
    )

    reference = repository.get_patient(args.patient_id)
    if reference is None:
        logger.error("No patient %s", args.patient_id)
        close_client()
        return 1

    if args.count:
        print(finder.count_similar_patients(reference))
    else:
        if args.prototypes:
            results = finder.find_similar_prototypes(reference)
        else:
            results = finder.find_similar_patients(reference)
        summaries = [v.summary().model_dump(mode="json") for v in results[: args.top]]
        print(json.dumps(summaries, indent=2))

    close_client()
    return 0


if __name__ == "__main__":
    sys.exit(main())
