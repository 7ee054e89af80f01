"""
core/patient_repository.py — Where candidate patients come from.

The finder depends only on the ``PatientRepository`` protocol.
``MongoPatientRepository`` is the production adapter over the ``patients``
and ``disease_profiles`` collections; disease profiles double as the
prototype pool.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol, Sequence, runtime_checkable

from pymongo.errors import PyMongoError

from core.models import AccessType, Disorder, Feature, Patient

logger = logging.getLogger(__name__)


class RepositoryUnavailableError(RuntimeError):
    """The patient store could not be reached; never a "no results" condition."""


@runtime_checkable
class PatientRepository(Protocol):
    def patients_accessible_to(self, user: Optional[str]) -> Sequence[Patient]: ...

    def prototype_patients(self) -> Sequence[Patient]: ...

    def is_owned_by(self, user: Optional[str], patient: Patient) -> bool: ...

    def access_for(self, user: Optional[str], patient: Patient) -> AccessType: ...


# ---------------------------------------------------------------------------
# Document → model conversion
# ---------------------------------------------------------------------------

def _features_from_document(doc: dict) -> list[Feature]:
    if doc.get("features"):
        return [
            Feature(
                id=f["id"],
                name=f.get("name") or "",
                presence=f.get("presence", "present"),
                qualifiers=tuple(f.get("qualifiers") or ()),
            )
            for f in doc["features"]
        ]
    # Flat id lists written by scripts.ingest_patients
    features = [Feature(id=t) for t in doc.get("hpo_terms", [])]
    features += [Feature(id=t, presence="absent") for t in doc.get("excluded_hpo_terms", [])]
    return features


def _disorders_from_document(doc: dict) -> list[Disorder]:
    if doc.get("disorders"):
        return [Disorder(id=d.get("id") or "", name=d.get("name") or "") for d in doc["disorders"]]
    if doc.get("diagnosis_omim") or doc.get("diagnosis_name"):
        return [Disorder(id=doc.get("diagnosis_omim") or "", name=doc.get("diagnosis_name") or "")]
    return []


def patient_from_document(doc: dict) -> Patient:
    """Build a ``Patient`` from a ``patients`` collection document."""
    try:
        visibility = AccessType(doc.get("visibility") or AccessType.PRIVATE)
    except ValueError:
        logger.warning("Patient %s has unknown visibility %r, treated as private",
                       doc.get("_id"), doc.get("visibility"))
        visibility = AccessType.PRIVATE
    return Patient(
        id=str(doc["_id"]),
        owner=doc.get("owner"),
        group=doc.get("group"),
        visibility=visibility,
        features=_features_from_document(doc),
        disorders=_disorders_from_document(doc),
    )


def prototype_from_document(doc: dict) -> Patient:
    """Build an open prototype patient from a ``disease_profiles`` document."""
    return Patient(
        id=str(doc["_id"]),
        visibility=AccessType.OPEN,
        features=[Feature(id=t) for t in sorted(doc.get("hpo_terms", []))],
        disorders=[Disorder(id=str(doc["_id"]), name=doc.get("name") or "")],
    )


# ---------------------------------------------------------------------------
# MongoDB adapter
# ---------------------------------------------------------------------------

class MongoPatientRepository:
    """
    Patient store backed by MongoDB.

    Access rule: the owner, or a member of the owning group, sees a patient
    with ``open`` access; everybody else gets the patient's stored
    visibility.  ``private`` patients never appear in another user's
    candidate list.

    Group membership is resolved once per search: ``patients_accessible_to``
    re-reads the caller's groups and later ownership checks reuse them.
    """

    def __init__(self, db) -> None:
        """
        Parameters
        ----------
        db : pymongo.database.Database
            The MongoDB database handle (from ``core.database.get_db()``).
        """
        self._db = db
        self._groups: dict[str, list[str]] = {}

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def groups_of(self, user: Optional[str], refresh: bool = False) -> list[str]:
        if not user:
            return []
        if not refresh and user in self._groups:
            return self._groups[user]
        try:
            doc = self._db["users"].find_one({"_id": user}, {"groups": 1})
        except PyMongoError as exc:
            raise RepositoryUnavailableError(f"users lookup failed: {exc}") from exc
        self._groups[user] = list(doc.get("groups", [])) if doc else []
        return self._groups[user]

    def is_owned_by(self, user: Optional[str], patient: Patient) -> bool:
        if not user:
            return False
        if patient.owner == user:
            return True
        return patient.group is not None and patient.group in self.groups_of(user)

    def access_for(self, user: Optional[str], patient: Patient) -> AccessType:
        if self.is_owned_by(user, patient):
            return AccessType.OPEN
        return patient.visibility

    # ------------------------------------------------------------------
    # Patients
    # ------------------------------------------------------------------

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        try:
            doc = self._db["patients"].find_one({"_id": patient_id})
        except PyMongoError as exc:
            raise RepositoryUnavailableError(f"patient lookup failed: {exc}") from exc
        return patient_from_document(doc) if doc else None

    def patients_accessible_to(self, user: Optional[str]) -> list[Patient]:
        clauses: list[dict] = [
            {"visibility": {"$in": [AccessType.MATCHABLE.value, AccessType.OPEN.value]}}
        ]
        if user:
            clauses.append({"owner": user})
            groups = self.groups_of(user, refresh=True)
            if groups:
                clauses.append({"group": {"$in": groups}})
        try:
            docs: Iterable[dict] = list(self._db["patients"].find({"$or": clauses}))
        except PyMongoError as exc:
            raise RepositoryUnavailableError(f"patient query failed: {exc}") from exc
        return [patient_from_document(d) for d in docs]

    def prototype_patients(self) -> list[Patient]:
        try:
            docs = list(self._db["disease_profiles"].find({}, {"name": 1, "hpo_terms": 1}))
        except PyMongoError as exc:
            raise RepositoryUnavailableError(f"prototype query failed: {exc}") from exc
        return [prototype_from_document(d) for d in docs]
