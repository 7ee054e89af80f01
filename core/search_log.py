"""
core/search_log.py — Redis-backed audit trail of similarity searches.

Records who searched for what and what they were shown.  Only redacted
summaries are ever written.  The log is best-effort: a Redis outage is logged
and never fails the search itself.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

import redis

from core.config import SEARCH_LOG_TTL
from core.models import PatientSimilaritySummary

logger = logging.getLogger(__name__)


class SearchLog:
    """Thin wrapper around Redis for per-reference search records."""

    def __init__(self, redis_url: str, ttl: int = SEARCH_LOG_TTL) -> None:
        """
        Connect to Redis.

        Parameters
        ----------
        redis_url : str
            Full Redis connection string (e.g. ``redis://default:pw@host:port``).
        ttl : int
            Seconds a reference patient's search list is kept after its last write.
        """
        self._r = redis.from_url(redis_url, decode_responses=True)
        self.ttl = ttl

    @staticmethod
    def _key(reference_id: str) -> str:
        return f"search:{reference_id}"

    def log_search(
        self,
        user: Optional[str],
        reference_id: str,
        kind: str,
        results: Sequence[PatientSimilaritySummary],
        result_count: Optional[int] = None,
    ) -> None:
        """Append one search record to the reference patient's list."""
        record = {
            "user": user,
            "reference_id": reference_id,
            "kind": kind,
            "result_count": len(results) if result_count is None else result_count,
            "results": [r.model_dump(mode="json") for r in results],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        key = self._key(reference_id)
        try:
            self._r.rpush(key, json.dumps(record, default=str))
            self._r.expire(key, self.ttl)
        except redis.RedisError as exc:
            logger.error("Redis log_search failed: %s", exc)

    def get_searches(self, reference_id: str) -> list[dict]:
        """Return every search record for the reference patient, oldest first."""
        try:
            raw_list = self._r.lrange(self._key(reference_id), 0, -1)
            return [json.loads(item) for item in raw_list]
        except redis.RedisError as exc:
            logger.error("Redis get_searches failed: %s", exc)
            return []
