"""
tests/conftest.py — Shared fixtures: a small synthetic HPO hierarchy with
known frequencies and an in-memory patient repository.

Nothing here needs MongoDB, Redis or the real hp.obo.
"""

from __future__ import annotations

import math

import pytest

from core.models import AccessType, Feature, OntologyTerm, Patient
from core.ontology import TermHierarchy


SEIZURE = "HP:0001250"
FOCAL_SEIZURE = "HP:0007359"
TONIC_CLONIC = "HP:0002069"
NERVOUS_SYSTEM = "HP:0000707"
INTELLECTUAL_DISABILITY = "HP:0001249"
EYE = "HP:0000478"
CATARACT = "HP:0000518"
VISUAL_IMPAIRMENT = "HP:0000505"
CARDIOVASCULAR = "HP:0001626"
ASD = "HP:0001631"
PHENOTYPIC_ABNORMALITY = "HP:0000118"
ALL = "HP:0000001"


# (id, label, parents, frequency)
_TERMS = [
    (ALL, "All", (), 1.0),
    (PHENOTYPIC_ABNORMALITY, "Phenotypic abnormality", (ALL,), 1.0),
    (NERVOUS_SYSTEM, "Abnormality of the nervous system", (PHENOTYPIC_ABNORMALITY,), 0.5),
    (SEIZURE, "Seizure", (NERVOUS_SYSTEM,), 0.1),
    (FOCAL_SEIZURE, "Focal-onset seizure", (SEIZURE,), 0.02),
    (TONIC_CLONIC, "Bilateral tonic-clonic seizure", (SEIZURE,), 0.03),
    (INTELLECTUAL_DISABILITY, "Intellectual disability", (NERVOUS_SYSTEM,), 0.2),
    (EYE, "Abnormality of the eye", (PHENOTYPIC_ABNORMALITY,), 0.3),
    (VISUAL_IMPAIRMENT, "Visual impairment", (EYE,), 0.1),
    (CATARACT, "Cataract", (EYE,), 0.05),
    (CARDIOVASCULAR, "Abnormality of the cardiovascular system", (PHENOTYPIC_ABNORMALITY,), 0.4),
    (ASD, "Atrial septal defect", (CARDIOVASCULAR,), 0.04),
]


def ic(frequency: float) -> float:
    return -math.log(frequency)


def make_patient(pid: str, *term_ids: str, owner: str | None = None, **kwargs) -> Patient:
    return Patient(id=pid, owner=owner, features=[Feature(id=t) for t in term_ids], **kwargs)


class InMemoryRepository:
    """PatientRepository backed by plain lists; access tiers keyed by patient id."""

    def __init__(self, patients=(), prototypes=(), access=None):
        self.patients = list(patients)
        self.prototypes = list(prototypes)
        self.access = dict(access or {})

    def patients_accessible_to(self, user):
        return list(self.patients)

    def prototype_patients(self):
        return list(self.prototypes)

    def is_owned_by(self, user, patient):
        return user is not None and patient.owner == user

    def access_for(self, user, patient):
        return self.access.get(patient.id, AccessType.OPEN)


class FlakyOntology:
    """OntologyService wrapper whose calls for the given terms raise *error*."""

    def __init__(self, inner, error, ancestors=(), frequencies=(), terms=()):
        self.inner = inner
        self.error = error
        self.failing = {
            "ancestors_of": set(ancestors),
            "frequency_of": set(frequencies),
            "term": set(terms),
        }

    def _call(self, method, term_id):
        if term_id in self.failing[method]:
            raise self.error
        return getattr(self.inner, method)(term_id)

    def term(self, term_id):
        return self._call("term", term_id)

    def ancestors_of(self, term_id):
        return self._call("ancestors_of", term_id)

    def frequency_of(self, term_id):
        return self._call("frequency_of", term_id)


@pytest.fixture
def ontology() -> TermHierarchy:
    return TermHierarchy(
        [OntologyTerm(id=i, label=l, parents=p, frequency=f) for i, l, p, f in _TERMS],
        top_term=PHENOTYPIC_ABNORMALITY,
    )


@pytest.fixture
def seizure() -> Feature:
    return Feature(id=SEIZURE, name="Seizure")
