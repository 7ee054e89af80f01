"""
similarity/clustering.py — Group reference and candidate features under
their most specific shared ontology term.

Greedy best-match: every (reference, candidate) pair is keyed by the
highest-IC term both features descend from; pairs are popped from a heap in
order of decreasing IC.  Popping a pair whose features are both still free
opens a cluster rooted at that term, which then absorbs every other free
feature descending from the same root.  Whatever is left over becomes an
unmatched singleton with no root and score 0.0.

Ties on IC are broken by root id, then reference feature id, then candidate
feature id (all ascending), then input position, so the outcome never
depends on dict or set ordering.
"""

from __future__ import annotations

import heapq
import logging
from typing import Optional, Sequence

from core.models import AccessType, Feature
from core.ontology import OntologyService
from core.patient_repository import RepositoryUnavailableError
from similarity.scoring import score_root
from similarity.views import FeatureClusterView

logger = logging.getLogger(__name__)


def _closure(feature: Feature, ontology: OntologyService) -> frozenset[str]:
    """The feature's term plus all its ancestors; empty if the lookup fails."""
    try:
        return frozenset(t.id for t in ontology.ancestors_of(feature.id))
    except RepositoryUnavailableError:
        raise
    except Exception as exc:
        logger.warning("Ancestor lookup failed for %s, left unmatched: %s", feature.id, exc)
        return frozenset()


def cluster_features(
    reference: Sequence[Feature],
    match: Sequence[Feature],
    ontology: OntologyService,
    access: AccessType = AccessType.PRIVATE,
) -> list[FeatureClusterView]:
    """
    Partition the present features of both patients into clusters.

    Parameters
    ----------
    reference : Sequence[Feature]
        The reference patient's features.
    match : Sequence[Feature]
        The candidate patient's features.
    ontology : OntologyService
        Supplies ancestors and term frequencies.
    access : AccessType
        Tier stamped on every produced cluster.

    Returns
    -------
    list[FeatureClusterView]
        Matched clusters (highest score first), then unmatched reference
        singletons, then unmatched candidate singletons, each in input order.
    """
    ref = [f for f in reference if f.is_present]
    cand = [f for f in match if f.is_present]
    if not ref and not cand:
        return []

    ref_closures = [_closure(f, ontology) for f in ref]
    cand_closures = [_closure(f, ontology) for f in cand]

    ic_cache: dict[str, Optional[float]] = {}

    def ic(term_id: str) -> Optional[float]:
        if term_id not in ic_cache:
            try:
                ic_cache[term_id] = score_root(term_id, ontology)
            except RepositoryUnavailableError:
                raise
            except Exception as exc:
                logger.warning("Cannot score candidate root %s: %s", term_id, exc)
                ic_cache[term_id] = None
        return ic_cache[term_id]

    # term id → positions of candidate features descending from it
    index: dict[str, list[int]] = {}
    for j, closure in enumerate(cand_closures):
        for term_id in closure:
            index.setdefault(term_id, []).append(j)

    heap: list[tuple[float, str, str, str, int, int]] = []
    for i, closure in enumerate(ref_closures):
        best: dict[int, tuple[float, str]] = {}
        for term_id in closure:
            positions = index.get(term_id)
            if not positions:
                continue
            term_ic = ic(term_id)
            if term_ic is None or term_ic <= 0.0:
                continue
            for j in positions:
                prev = best.get(j)
                if prev is None or (-term_ic, term_id) < (-prev[0], prev[1]):
                    best[j] = (term_ic, term_id)
        for j, (term_ic, term_id) in best.items():
            heap.append((-term_ic, term_id, ref[i].id, cand[j].id, i, j))
    heapq.heapify(heap)

    ref_free = set(range(len(ref)))
    cand_free = set(range(len(cand)))
    clusters: list[FeatureClusterView] = []

    while heap and ref_free and cand_free:
        neg_ic, root_id, _, _, i, j = heapq.heappop(heap)
        if i not in ref_free or j not in cand_free:
            continue
        try:
            root = ontology.term(root_id)
        except RepositoryUnavailableError:
            raise
        except Exception as exc:
            logger.warning("Root term %s vanished, pair skipped: %s", root_id, exc)
            continue

        ref_members = sorted(k for k in ref_free if root_id in ref_closures[k])
        cand_members = sorted(k for k in cand_free if root_id in cand_closures[k])
        ref_free.difference_update(ref_members)
        cand_free.difference_update(cand_members)

        clusters.append(FeatureClusterView(
            match=[cand[k] for k in cand_members],
            reference=[ref[k] for k in ref_members],
            access=access,
            root=root,
            score=-neg_ic,
        ))

    for k in sorted(ref_free):
        clusters.append(FeatureClusterView(match=[], reference=[ref[k]], access=access))
    for k in sorted(cand_free):
        clusters.append(FeatureClusterView(match=[cand[k]], reference=[], access=access))

    return clusters
