"""
similarity — Phenotypic similarity scoring with access-tiered disclosure.

Re-exports the public API:
    - SimilarPatientsFinder   (ranked search over patients / prototypes)
    - compare_patients        (one reference/candidate comparison)
    - cluster_features        (greedy most-specific-ancestor clustering)
    - FeatureClusterView, PatientSimilarityView  (redacting result views)
    - SelfSimilarityNormalizer, aggregate_score, score_root
    - redact_match
"""

from similarity.clustering import cluster_features
from similarity.compare import compare_patients
from similarity.finder import SimilarPatientsFinder
from similarity.redaction import redact_match
from similarity.scoring import SelfSimilarityNormalizer, aggregate_score, score_root
from similarity.views import FeatureClusterView, PatientSimilarityView

__all__ = [
    "SimilarPatientsFinder",
    "compare_patients",
    "cluster_features",
    "FeatureClusterView",
    "PatientSimilarityView",
    "SelfSimilarityNormalizer",
    "aggregate_score",
    "score_root",
    "redact_match",
]
