"""
similarity/finder.py — Rank candidate patients by similarity to a reference.

The finder is bound to one calling user.  Which candidates that user may see
at all, and with which access tier, is the repository's call; the finder
compares, filters by score, sorts and logs.  Each comparison is independent,
so candidates are fanned out over a thread pool.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from core.config import SIMILARITY_MAX_WORKERS, SIMILARITY_MIN_SCORE
from core.models import AccessType, Patient
from core.ontology import OntologyService
from core.patient_repository import PatientRepository
from core.search_log import SearchLog
from similarity.compare import compare_patients
from similarity.scoring import Normalizer, SelfSimilarityNormalizer
from similarity.views import PatientSimilarityView

logger = logging.getLogger(__name__)


class SimilarPatientsFinder:
    """Search for patients (or prototypes) similar to a reference patient."""

    def __init__(
        self,
        repository: PatientRepository,
        ontology: OntologyService,
        user: Optional[str] = None,
        normalizer: Optional[Normalizer] = None,
        max_workers: int = SIMILARITY_MAX_WORKERS,
        min_score: float = SIMILARITY_MIN_SCORE,
        search_log: Optional[SearchLog] = None,
    ) -> None:
        """
        Parameters
        ----------
        repository : PatientRepository
            Supplies candidates, ownership and access tiers.
        ontology : OntologyService
            Term hierarchy and frequencies.
        user : str or None
            The calling user; the reference patient must be theirs.
        normalizer : Normalizer or None
            Aggregate-score normaliser; defaults to the reference's
            self-similarity.
        max_workers : int
            Thread-pool size for the per-candidate fan-out; 1 runs inline.
        min_score : float
            Candidates scoring below this are dropped.
        search_log : SearchLog or None
            Optional audit log of every search.
        """
        self.repository = repository
        self.ontology = ontology
        self.user = user
        self.normalizer = normalizer or SelfSimilarityNormalizer(ontology)
        self.max_workers = max(1, max_workers)
        self.min_score = min_score
        self.search_log = search_log

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def find_similar_patients(self, reference: Optional[Patient]) -> list[PatientSimilarityView]:
        """
        Real patients similar to *reference*, best first.

        Returns an empty list if *reference* is missing, malformed or not
        owned by the calling user.  Repository outages propagate as
        ``RepositoryUnavailableError``.
        """
        if not self._is_valid_reference(reference):
            return []
        results = self._rank(reference, self._patient_candidates(reference))
        logger.info("%d similar patients for %s", len(results), reference.id)
        self._log(reference, "patients", results)
        return results

    def find_similar_prototypes(self, reference: Optional[Patient]) -> list[PatientSimilarityView]:
        """Prototype (disease archetype) patients similar to *reference*, best first."""
        if not self._is_valid_reference(reference):
            return []
        candidates = [
            (p, AccessType.OPEN)
            for p in self.repository.prototype_patients()
            if p.id != reference.id
        ]
        results = self._rank(reference, candidates)
        logger.info("%d similar prototypes for %s", len(results), reference.id)
        self._log(reference, "prototypes", results)
        return results

    def count_similar_patients(self, reference: Optional[Patient]) -> int:
        """Same as ``len(find_similar_patients(reference))``; 0 for an invalid reference."""
        if not self._is_valid_reference(reference):
            return 0
        count = len(self._rank(reference, self._patient_candidates(reference)))
        self._log(reference, "count", [], result_count=count)
        return count

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_valid_reference(self, reference: object) -> bool:
        if not isinstance(reference, Patient) or not reference.id:
            logger.info("Rejected similarity search: invalid reference patient")
            return False
        if not self.repository.is_owned_by(self.user, reference):
            logger.info("Rejected similarity search: %s not owned by %s", reference.id, self.user)
            return False
        return True

    def _patient_candidates(self, reference: Patient) -> list[tuple[Patient, AccessType]]:
        return [
            (p, self.repository.access_for(self.user, p))
            for p in self.repository.patients_accessible_to(self.user)
            if p.id != reference.id
        ]

    def _rank(
        self,
        reference: Patient,
        candidates: Sequence[tuple[Patient, AccessType]],
    ) -> list[PatientSimilarityView]:
        if not candidates:
            return []

        # The normalising constant depends on the reference only.
        norm = self.normalizer(reference.present_features())

        def compare(item: tuple[Patient, AccessType]) -> PatientSimilarityView:
            candidate, access = item
            return compare_patients(
                reference, candidate, access, self.ontology, normalizer=lambda _: norm
            )

        if self.max_workers == 1 or len(candidates) == 1:
            views = [compare(c) for c in candidates]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                views = list(pool.map(compare, candidates))

        views = [v for v in views if v.score >= self.min_score]
        views.sort(key=lambda v: (-v.score, v.candidate_id))
        return views

    def _log(
        self,
        reference: Patient,
        kind: str,
        results: Sequence[PatientSimilarityView],
        result_count: Optional[int] = None,
    ) -> None:
        if self.search_log is None:
            return
        self.search_log.log_search(
            self.user,
            reference.id,
            kind,
            [v.summary() for v in results],
            result_count=result_count,
        )
