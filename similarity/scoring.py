"""
similarity/scoring.py — Information-content scoring and aggregation.

Cluster score is the Resnik similarity of its members: the information
content of the shared root.  The patient-level score normalises the sum of
cluster scores by what the reference patient would score against itself.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, Sequence

from hpo_functions import information_content
from core.models import Feature
from core.ontology import OntologyService
from core.patient_repository import RepositoryUnavailableError

logger = logging.getLogger(__name__)

# Reference features → normalising constant for the aggregate score.
Normalizer = Callable[[Sequence[Feature]], float]


def score_root(term_id: str, ontology: OntologyService) -> float:
    """IC of *term_id*; rarer (lower frequency) terms score higher."""
    return information_content(ontology.frequency_of(term_id))


class SelfSimilarityNormalizer:
    """
    Normalise by the reference patient's self-similarity.

    Matched against itself, every present reference feature clusters on its
    own term, so the self-similarity is the sum of their ICs.  Terms whose
    lookup fails (unknown id or a faulty ontology service) contribute nothing, exactly as they would in a real
    comparison.
    """

    def __init__(self, ontology: OntologyService) -> None:
        self.ontology = ontology

    def __call__(self, reference: Sequence[Feature]) -> float:
        total = 0.0
        for feature in reference:
            if not feature.is_present:
                continue
            try:
                total += score_root(feature.id, self.ontology)
            except RepositoryUnavailableError:
                raise
            except Exception as exc:
                logger.warning("Cannot score reference term %s: %s", feature.id, exc)
        return total


def aggregate_score(cluster_scores: Iterable[float], normalization: float) -> float:
    """
    Sum of cluster scores divided by *normalization*, clamped to [0, 1].

    A non-positive normalising constant yields 0.0.
    """
    if normalization <= 0.0:
        return 0.0
    return min(1.0, max(0.0, sum(cluster_scores) / normalization))
