"""
similarity/views.py — Read-only result objects of a similarity comparison.

A ``FeatureClusterView`` holds the true candidate features of one cluster in
a private attribute and only ever hands them out through ``redact_match``.
They are not a model field, so ``model_dump()``, ``repr()`` and equality
see the redacted shape only.
"""

from __future__ import annotations

from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, TypeAdapter, model_validator

from core.models import (
    AccessType,
    Disorder,
    Feature,
    FeatureClusterSummary,
    OntologyTerm,
    PatientSimilaritySummary,
)
from similarity.redaction import redact_disclosure, redact_match

_FEATURES = TypeAdapter(tuple[Feature, ...])


class FeatureClusterView(BaseModel):
    """
    Reference and candidate features grouped under a shared ontology root.

    Parameters
    ----------
    match : Sequence[Feature]
        The candidate's features, can be empty but never ``None``.
    reference : Sequence[Feature]
        The reference patient's features, can be empty but never ``None``.
    access : AccessType
        The caller's tier for the candidate.
    root : OntologyTerm or None
        Most specific shared ancestor; ``None`` marks an unmatched cluster.
    score : float
        Information content of *root*; must be 0.0 when *root* is ``None``.
    """
    model_config = ConfigDict(frozen=True)

    reference: tuple[Feature, ...]
    access: AccessType
    root: Optional[OntologyTerm] = None
    score: float = Field(default=0.0, ge=0.0)

    _match: tuple[Feature, ...] = PrivateAttr(default=())

    def __init__(self, match: Sequence[Feature], **data) -> None:
        super().__init__(**data)
        # raises ValidationError for None
        self._match = _FEATURES.validate_python(match)

    @model_validator(mode="after")
    def _unmatched_scores_zero(self) -> "FeatureClusterView":
        if self.root is None and self.score != 0.0:
            raise ValueError("an unmatched cluster (no root) must score 0.0")
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FeatureClusterView):
            return NotImplemented
        return self._visible() == other._visible()

    def __hash__(self) -> int:
        return hash(self._visible())

    def _visible(self) -> tuple:
        return (self.access, self.root, self.score, self.reference, tuple(self.get_match()))

    @property
    def root_id(self) -> Optional[str]:
        return self.root.id if self.root is not None else None

    @property
    def is_matched(self) -> bool:
        return self.root is not None

    def get_match(self) -> list[Optional[Feature]]:
        """The candidate's features as the caller may see them."""
        return redact_match(self._match, self.access)

    def get_reference(self) -> list[Feature]:
        """The reference features; these belong to the caller and are never redacted."""
        return list(self.reference)

    def summary(self) -> FeatureClusterSummary:
        return FeatureClusterSummary(
            root_id=self.root_id,
            root_label=self.root.label if self.root is not None else "",
            score=self.score,
            match=self.get_match(),
            reference=self.get_reference(),
        )


class PatientSimilarityView(BaseModel):
    """All clusters of one reference/candidate comparison plus the aggregate score."""
    model_config = ConfigDict(frozen=True)

    reference_id: str
    candidate_id: str
    access: AccessType
    clusters: tuple[FeatureClusterView, ...]
    score: float = Field(default=0.0, ge=0.0, le=1.0)
    disorders: tuple[Disorder, ...] = Field(default=(), exclude=True, repr=False)

    @model_validator(mode="after")
    def _uniform_access(self) -> "PatientSimilarityView":
        for cluster in self.clusters:
            if cluster.access is not self.access:
                raise ValueError(
                    f"cluster access {cluster.access.value!r} differs from "
                    f"view access {self.access.value!r}"
                )
        return self

    def get_clusters(self) -> list[FeatureClusterView]:
        return list(self.clusters)

    def matched_clusters(self) -> list[FeatureClusterView]:
        return [c for c in self.clusters if c.is_matched]

    def get_disorders(self) -> list[Disorder]:
        """The candidate's diagnoses; visible with open access only."""
        return redact_disclosure(self.disorders, self.access)

    def summary(self) -> PatientSimilaritySummary:
        return PatientSimilaritySummary(
            reference_id=self.reference_id,
            candidate_id=self.candidate_id,
            access=self.access,
            score=self.score,
            clusters=[c.summary() for c in self.clusters],
            disorders=self.get_disorders(),
        )
