"""
scripts/ingest_patients.py — Load sample patient cases into MongoDB.

Each patient gets an owner and a visibility (private / matchable / open) so
the similarity search has something to redact.

Usage:  python -m scripts.ingest_patients [--owner demo] [--visibility matchable]
"""

from __future__ import annotations

import argparse
import re
import sys

sys.path.insert(0, ".")

from core.database import close_client, get_db
from core.models import AccessType

PATIENT_FILE = "data/raw/Phenotypic-profiles-Rare-Disease-Hackathon2025.txt"


def parse_patient_file(path: str, owner: str, visibility: str) -> list[dict]:
    """
    Parse the "Patient N / description / HPO; HPO; ..." text format.

    Returns
    -------
    list[dict]
        ``patients`` collection documents.
    """
    with open(path, "r", encoding="utf-8-sig") as fh:
        lines = [l.rstrip("\r\n") for l in fh.readlines()]

    patients: list[dict] = []
    i = 0

    while i < len(lines):
        line = lines[i].strip()

        # Look for "Patient N" header
        if re.match(r"^Patient\s+\d+", line, re.IGNORECASE):
            pid = f"patient_{len(patients) + 1:02d}"

            # Next non-empty line is the description
            i += 1
            while i < len(lines) and not lines[i].strip():
                i += 1
            desc_line = lines[i].strip() if i < len(lines) else ""

            diag_match = re.search(
                r"diagnosed with\s+(.+?)(?:\s*[()]+\s*OMIM:\s*(\d+)\s*\))?$",
                desc_line,
                re.IGNORECASE,
            )
            diagnosis_name = diag_match.group(1).strip() if diag_match else desc_line
            omim_num = diag_match.group(2) if diag_match and diag_match.group(2) else None

            # Next non-empty line is HPO terms
            i += 1
            while i < len(lines) and not lines[i].strip():
                i += 1
            hpo_line = lines[i].strip() if i < len(lines) else ""

            patients.append({
                "_id": pid,
                "owner": owner,
                "visibility": visibility,
                "features": [
                    {"id": t.strip(), "presence": "present"}
                    for t in hpo_line.split(";") if t.strip()
                ],
                "disorders": [{
                    "id": f"OMIM:{omim_num}" if omim_num else "",
                    "name": diagnosis_name,
                }],
            })

        i += 1

    return patients


def main() -> None:
    """Insert sample patient documents into MongoDB."""
    parser = argparse.ArgumentParser(description=__doc__.split("\n")[1])
    parser.add_argument("--file", default=PATIENT_FILE)
    parser.add_argument("--owner", default="demo")
    parser.add_argument(
        "--visibility",
        default=AccessType.MATCHABLE.value,
        choices=[a.value for a in AccessType],
    )
    args = parser.parse_args()

    print(f"Parsing patient file: {args.file}")
    patients = parse_patient_file(args.file, args.owner, args.visibility)
    print(f"  -> Parsed {len(patients)} patients")

    db = get_db()
    print("Dropping & inserting patients collection...")
    db["patients"].drop()
    if patients:
        db["patients"].insert_many(patients)

    for p in patients:
        print(
            f"  {p['_id']}: {p['disorders'][0]['name']} — "
            f"{len(p['features'])} features ({p['visibility']})"
        )

    print(f"\n{len(patients)} patients inserted. Done.")
    close_client()


if __name__ == "__main__":
    main()
