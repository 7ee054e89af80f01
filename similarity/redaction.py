"""
similarity/redaction.py — Tier-based disclosure of a candidate's features.

Redaction is a pure function of the access tier: nothing is mutated, every
call builds a fresh list, so views can be rendered repeatedly and from any
thread.
"""

from __future__ import annotations

from typing import Optional, Sequence, TypeVar

from core.models import AccessType

T = TypeVar("T")

# What a hidden feature is rendered as under matchable access.
HIDDEN = None


def redact_match(items: Sequence[T], access: AccessType) -> list[Optional[T]]:
    """
    Render a candidate's matched items for a caller with *access*.

    Parameters
    ----------
    items : Sequence
        The true, unredacted items (features, disorders, ...).
    access : AccessType
        The caller's tier for the candidate.

    Returns
    -------
    list
        ``private``   → ``[]``
        ``matchable`` → ``[HIDDEN] * len(items)`` (size kept, content dropped)
        ``open``      → a copy of *items*
    """
    access = AccessType(access)
    if access is AccessType.PRIVATE:
        return []
    if access is AccessType.MATCHABLE:
        return [HIDDEN] * len(items)
    return list(items)


def redact_disclosure(items: Sequence[T], access: AccessType) -> list[T]:
    """Like ``redact_match`` but identifying data: only ``open`` sees anything."""
    return list(items) if AccessType(access) is AccessType.OPEN else []
