"""
core/ontology.py — The ontology lookup capability consumed by the similarity
engine, plus its in-memory implementation.

The engine only ever sees ``OntologyService``; tests hand it a small
synthetic ``TermHierarchy``, production code builds one from hp.obo (pronto)
or from the ``hpo_terms`` MongoDB collection (see ``core.data_loader``).
"""

from __future__ import annotations

import logging
import math
from collections import deque
from functools import lru_cache
from typing import Iterable, Mapping, Protocol, Sequence, runtime_checkable

from core.config import HPO_TOP_TERM
from core.models import OntologyTerm

logger = logging.getLogger(__name__)


class OntologyLookupError(LookupError):
    """Raised when a term id is unknown to the ontology service."""


@runtime_checkable
class OntologyService(Protocol):
    def term(self, term_id: str) -> OntologyTerm: ...

    def ancestors_of(self, term_id: str) -> Sequence[OntologyTerm]: ...

    def frequency_of(self, term_id: str) -> float: ...


class TermHierarchy:
    """
    In-memory phenotype DAG with memoised ancestor walks.

    ``ancestors_of`` returns the term itself first, then its ancestors nearest
    first.  The top term (``HP:0000118`` by default) and everything above it
    are cut off: every phenotype shares them, so they carry no information.

    Instances are read-only after construction and safe to share between
    threads.
    """

    def __init__(
        self,
        terms: Mapping[str, OntologyTerm] | Iterable[OntologyTerm],
        top_term: str | None = HPO_TOP_TERM,
    ) -> None:
        if isinstance(terms, Mapping):
            self._terms: dict[str, OntologyTerm] = dict(terms)
        else:
            self._terms = {t.id: t for t in terms}
        self.top_term = top_term
        self._cut: frozenset[str] = frozenset(
            self._walk_up(top_term, frozenset()) if top_term in self._terms else ()
        )
        self._ancestor_ids = lru_cache(maxsize=None)(self._compute_ancestor_ids)

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_pronto(
        cls,
        ontology,
        frequencies: Mapping[str, float],
        default_frequency: float = 1.0,
        top_term: str | None = HPO_TOP_TERM,
    ) -> "TermHierarchy":
        """
        Build from a parsed ``pronto.Ontology`` (hp.obo).

        Parameters
        ----------
        ontology : pronto.Ontology
        frequencies : Mapping[str, float]
            HPO ID → annotation frequency (``hpo_functions.hpo_term_frequencies``).
        default_frequency : float
            Used for terms missing from *frequencies*.
        """
        terms: dict[str, OntologyTerm] = {}
        for term in ontology.terms():
            if not term.id.startswith("HP:") or term.obsolete:
                continue
            parents = tuple(
                sup.id for sup in term.superclasses(distance=1, with_self=False)
            )
            terms[term.id] = OntologyTerm(
                id=term.id,
                label=term.name or "",
                parents=parents,
                frequency=frequencies.get(term.id, default_frequency),
            )
        return cls(terms, top_term=top_term)

    @classmethod
    def from_documents(
        cls,
        docs: Iterable[dict],
        top_term: str | None = HPO_TOP_TERM,
    ) -> "TermHierarchy":
        """Build from ``hpo_terms`` documents (``_id``, ``label``, ``parents``, ``frequency``)."""
        terms: dict[str, OntologyTerm] = {}
        for doc in docs:
            freq = doc.get("frequency")
            if freq is None and doc.get("ic_score") is not None:
                freq = math.exp(-float(doc["ic_score"]))
            terms[doc["_id"]] = OntologyTerm(
                id=doc["_id"],
                label=doc.get("label") or "",
                parents=tuple(doc.get("parents") or ()),
                frequency=float(freq) if freq else 1.0,
            )
        return cls(terms, top_term=top_term)

    # ------------------------------------------------------------------
    # OntologyService
    # ------------------------------------------------------------------

    def term(self, term_id: str) -> OntologyTerm:
        try:
            return self._terms[term_id]
        except KeyError:
            raise OntologyLookupError(f"unknown ontology term {term_id!r}") from None

    def ancestors_of(self, term_id: str) -> list[OntologyTerm]:
        return [self._terms[t] for t in self.ancestor_ids(term_id)]

    def ancestor_ids(self, term_id: str) -> tuple[str, ...]:
        """Ids of ``ancestors_of(term_id)``, same order."""
        if term_id not in self._terms:
            raise OntologyLookupError(f"unknown ontology term {term_id!r}")
        return self._ancestor_ids(term_id)

    def frequency_of(self, term_id: str) -> float:
        return self.term(term_id).frequency

    def __contains__(self, term_id: object) -> bool:
        return term_id in self._terms

    def __len__(self) -> int:
        return len(self._terms)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _compute_ancestor_ids(self, term_id: str) -> tuple[str, ...]:
        return tuple(self._walk_up(term_id, self._cut))

    def _walk_up(self, term_id: str, cut: frozenset[str]) -> list[str]:
        # Breadth-first over is_a parents, term itself first.
        if term_id in cut:
            return []
        order: list[str] = []
        seen = {term_id}
        queue = deque([term_id])
        while queue:
            current = queue.popleft()
            order.append(current)
            for parent in self._terms[current].parents:
                if parent in seen or parent in cut:
                    continue
                if parent not in self._terms:
                    logger.debug("Dangling parent %s of %s ignored", parent, current)
                    continue
                seen.add(parent)
                queue.append(parent)
        return order
