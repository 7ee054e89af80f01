"""
core/models.py — Single source of truth for the shared data models.

Patients, their phenotypic features, ontology terms and the access tier all
live here.  The similarity engine (``similarity.*``) only reads these objects;
it never mutates them.  The summary models at the bottom are the redacted,
serialisable shape handed to presentation layers.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Access tier
# ---------------------------------------------------------------------------

class AccessType(str, Enum):
    """Disclosure level granted to a caller for one candidate patient."""
    PRIVATE = "private"        # nothing about the candidate's features
    MATCHABLE = "matchable"    # shape of the match only
    OPEN = "open"              # everything

    def is_private_access(self) -> bool:
        return self is AccessType.PRIVATE

    def is_open_access(self) -> bool:
        return self is AccessType.OPEN

    def is_matchable_access(self) -> bool:
        return self is AccessType.MATCHABLE


# ---------------------------------------------------------------------------
# Patient record
# ---------------------------------------------------------------------------

class Feature(BaseModel):
    """A single observed clinical sign, identified by its HPO term."""
    model_config = ConfigDict(frozen=True)

    id: str                                              # e.g. "HP:0001250"
    name: str = ""                                       # e.g. "Seizure"
    presence: Literal["present", "absent", "unknown"] = "present"
    qualifiers: tuple[str, ...] = ()                     # free text, e.g. "onset: infantile"

    @property
    def is_present(self) -> bool:
        return self.presence == "present"


class Disorder(BaseModel):
    """A diagnosed disorder attached to a patient (OMIM / ORPHA id or free text)."""
    model_config = ConfigDict(frozen=True)

    id: str = ""
    name: str = ""

    @property
    def value(self) -> str:
        """The id when there is one, otherwise the free-text name."""
        return self.id if self.id.strip() else self.name


class Patient(BaseModel):
    """Read-only snapshot of a patient (or prototype) record."""
    model_config = ConfigDict(frozen=True)

    id: str
    owner: Optional[str] = None
    group: Optional[str] = None
    visibility: AccessType = AccessType.PRIVATE
    features: tuple[Feature, ...] = ()
    disorders: tuple[Disorder, ...] = ()

    def present_features(self) -> list[Feature]:
        """Features observed as present, in record order."""
        return [f for f in self.features if f.is_present]


# ---------------------------------------------------------------------------
# Ontology
# ---------------------------------------------------------------------------

class OntologyTerm(BaseModel):
    """A node of the phenotype ontology DAG."""
    model_config = ConfigDict(frozen=True)

    id: str                                              # e.g. "HP:0001250"
    label: str = ""
    parents: tuple[str, ...] = ()                        # direct is_a parents
    frequency: float = Field(default=1.0, gt=0.0, le=1.0)


# ---------------------------------------------------------------------------
# Redacted result summaries (what leaves the engine)
# ---------------------------------------------------------------------------

class FeatureClusterSummary(BaseModel):
    """Serialisable, access-filtered view of one feature cluster."""
    root_id: Optional[str] = None                        # None → unmatched
    root_label: str = ""
    score: float = 0.0
    match: list[Optional[Feature]] = Field(default_factory=list)   # None = hidden
    reference: list[Feature] = Field(default_factory=list)

    @property
    def is_matched(self) -> bool:
        return self.root_id is not None


class PatientSimilaritySummary(BaseModel):
    """Serialisable, access-filtered view of one reference/candidate comparison."""
    reference_id: str
    candidate_id: str
    access: AccessType
    score: float
    clusters: list[FeatureClusterSummary] = Field(default_factory=list)
    disorders: list[Disorder] = Field(default_factory=list)
