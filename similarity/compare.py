"""
similarity/compare.py — One reference/candidate comparison.

``compare_patients`` is a pure function of the two feature sets, the access
tier and the ontology: it shares no mutable state, so the finder can run
many of them in parallel.
"""

from __future__ import annotations

from typing import Optional

from core.models import AccessType, Patient
from core.ontology import OntologyService
from similarity.clustering import cluster_features
from similarity.scoring import Normalizer, SelfSimilarityNormalizer, aggregate_score
from similarity.views import PatientSimilarityView


def compare_patients(
    reference: Patient,
    candidate: Patient,
    access: AccessType,
    ontology: OntologyService,
    normalizer: Optional[Normalizer] = None,
) -> PatientSimilarityView:
    """
    Cluster, score and wrap one comparison.

    The aggregate score does not depend on *access*; only what the returned
    view discloses does.
    """
    normalizer = normalizer or SelfSimilarityNormalizer(ontology)
    reference_features = reference.present_features()

    clusters = cluster_features(
        reference_features, candidate.present_features(), ontology, access=access
    )
    score = aggregate_score(
        (c.score for c in clusters), normalizer(reference_features)
    )
    return PatientSimilarityView(
        reference_id=reference.id,
        candidate_id=candidate.id,
        access=access,
        clusters=clusters,
        score=score,
        disorders=candidate.disorders,
    )
