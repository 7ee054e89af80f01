#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
===============================================================================
Script Name:    hpo_functions.py
Version:        2.0

Description:
    Helpers for reading the HPO ontology (hp.obo) and the disease annotation
    file (phenotype.hpoa), and for deriving the term frequencies that feed
    information-content scoring.

Usage:
    python hpo_functions.py path/to/hp.obo path/to/phenotype.hpoa

Dependencies:
    - Python 3.x
    - Required libraries: pronto
===============================================================================
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Iterable

import pronto

logger = logging.getLogger(__name__)


def load_ontology(path_to_obo):
    """
    :param path_to_obo: full path to the .obo file downloaded from HPO
    :return: a pronto Ontology object containing HPO IDs, terms, and relationships
    """

    return pronto.Ontology(path_to_obo)  # Ignore the UnicodeWarning!


def read_disease_annotations(hpo_disease_annotations):
    """
    :param hpo_disease_annotations: full path to the tab-delimited "phenotype.hpoa" file downloaded from HPO
    :return: dictionary from disease ID -> set of corresponding HPO terms AND dictionary from disease ID -> name

    Negated annotations (qualifier "NOT") and non-phenotypic aspects (inheritance,
    onset, clinical course) are skipped.
    """

    disease_to_hpo: dict[str, set[str]] = {}
    disease_to_name: dict[str, str] = {}

    with open(hpo_disease_annotations, 'r', encoding='utf-8') as anno_handle:
        header = None
        for anno_line in anno_handle:

            if anno_line.startswith('#'):
                continue

            if not header:
                header = anno_line.strip().split('\t')
                continue

            cols = anno_line.rstrip('\n').split('\t')
            if len(cols) < 4:
                continue
            disease_id, disease_name, qualifier, hpo_id = cols[0:4]
            aspect = cols[10] if len(cols) > 10 else 'P'

            if qualifier.strip().upper() == 'NOT' or aspect != 'P':
                continue

            disease_to_hpo.setdefault(disease_id, set()).add(hpo_id)
            disease_to_name.setdefault(disease_id, disease_name)

    if disease_to_hpo:
        logger.info(
            "Read %d annotated diseases (avg %.1f terms/disease)",
            len(disease_to_hpo),
            sum(len(v) for v in disease_to_hpo.values()) / len(disease_to_hpo),
        )

    return disease_to_hpo, disease_to_name


def hpo_term_frequencies(
    disease_to_hpo: dict[str, set[str]],
    ancestors: Callable[[str], Iterable[str]],
) -> dict[str, float]:
    """
    :param disease_to_hpo: dictionary from disease ID -> set of HPO terms (computed in function "read_disease_annotations")
    :param ancestors: callable returning a term's ancestor IDs (the term itself may or may not be included)
    :return: dictionary from HPO ID -> fraction of diseases annotated with the term or any of its descendants

    Annotations are propagated up the hierarchy, so a parent is never rarer
    than any of its children. Terms whose ancestors cannot be resolved still
    count for themselves.
    """

    total_annotated_diseases = len(disease_to_hpo)
    if not total_annotated_diseases:
        return {}

    counts: dict[str, int] = {}
    for hpo_set in disease_to_hpo.values():
        closure: set[str] = set()
        for hpo_id in hpo_set:
            closure.add(hpo_id)
            try:
                closure.update(ancestors(hpo_id))
            except LookupError:
                logger.warning("No ancestors for annotated term %s", hpo_id)
        for term_id in closure:
            counts[term_id] = counts.get(term_id, 0) + 1

    return {t: n / total_annotated_diseases for t, n in counts.items()}


def unannotated_frequency(disease_to_hpo: dict[str, set[str]]) -> float:
    """Frequency given to a term no disease is annotated with: rarer than any annotated term."""
    return 1.0 / (len(disease_to_hpo) + 1)


def information_content(frequency: float) -> float:
    """
    :param frequency: population frequency of a term, in (0, 1]
    :return: -ln(frequency); 0.0 for the root-level frequency of 1.0
    """

    if not 0.0 < frequency <= 1.0:
        raise ValueError(f"term frequency must be in (0, 1], got {frequency!r}")
    return -math.log(frequency)


if __name__ == "__main__":
    import sys

    logging.basicConfig(level=logging.INFO)
    path_to_obo, path_to_disease_anno = sys.argv[1:3]

    pheno_ontology = load_ontology(path_to_obo)
    disease_to_hpo, disease_to_name = read_disease_annotations(path_to_disease_anno)
    freqs = hpo_term_frequencies(
        disease_to_hpo,
        lambda t: (sup.id for sup in pheno_ontology[t].superclasses(with_self=False)),
    )

    # The twenty most informative annotated terms
    for term_id, freq in sorted(freqs.items(), key=lambda kv: kv[1])[:20]:
        print(term_id + '\t' + pheno_ontology[term_id].name + '\t' + f"{information_content(freq):.3f}")
