"""
Result Cache

Short-TTL memoization of (source, query, options) -> raw results.
Uses cachetools.TLRUCache so each entry carries its own TTL (sources
differ) and the clock is injectable for deterministic expiry in tests.

Features:
- Per-entry TTL with a 5 minute default
- LRU eviction when max size reached
- Fingerprint keys: ``source:<16 hex of sha256>``
- Hit / miss statistics
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from cachetools import TLRUCache

logger = logging.getLogger(__name__)

DEFAULT_TTL = 300.0


@dataclass(frozen=True, slots=True)
class _Entry:
    value: Any
    ttl: float


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    writes: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Cache hit rate (0-1)."""
        total = self.total_requests
        return self.hits / total if total > 0 else 0.0

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0
        self.writes = 0


class ResultCache:
    """
    In-memory TTL cache for source results.

    ``get`` and ``put`` never await, so they are atomic with respect to
    other tasks on the event loop. Two tasks missing the same key at once
    both fetch; the later write wins.

    Example:
        cache = ResultCache(default_ttl=300)
        key = cache.make_key("openalex", "crispr", {"limit": 10, "from_year": 2000})
        results = cache.get(key)
        if results is None:
            results = await fetch()
            cache.put(key, results, ttl=1800)
    """

    def __init__(
        self,
        max_size: int = 512,
        default_ttl: float = DEFAULT_TTL,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize cache.

        Args:
            max_size: Maximum number of entries
            default_ttl: Time-to-live in seconds when ``put`` gets none
            timer: Monotonic clock; inject a fake one in tests
        """
        self._default_ttl = default_ttl
        self._cache: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=max_size,
            ttu=self._time_to_use,
            timer=timer,
        )
        self._stats = CacheStats()

    @staticmethod
    def _time_to_use(_key: str, entry: _Entry, now: float) -> float:
        return now + entry.ttl

    @property
    def stats(self) -> CacheStats:
        return self._stats

    @staticmethod
    def make_key(source: str, query: str, options: Mapping[str, Any] | None = None) -> str:
        """Build a stable fingerprint for a source request."""
        payload = {
            "source": source,
            "query": query.strip().lower(),
            "options": dict(sorted((options or {}).items())),
        }
        digest = hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode("utf-8")).hexdigest()
        return f"{source}:{digest[:16]}"

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._cache.get(key)
        if entry is None:
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        logger.debug(f"Cache hit: {key}")
        return entry.value

    def put(self, key: str, value: Any, ttl: float | None = None) -> None:
        self._cache[key] = _Entry(value=value, ttl=self._default_ttl if ttl is None else ttl)
        self._stats.writes += 1

    def is_expired(self, key: str) -> bool:
        """True when no live entry exists for the key."""
        return key not in self._cache

    def invalidate(self, key: str) -> bool:
        try:
            del self._cache[key]
            return True
        except KeyError:
            return False

    def clear(self) -> int:
        """Clear all cache entries. Returns number cleared."""
        count = len(self._cache)
        self._cache.clear()
        return count

    def __len__(self) -> int:
        self._cache.expire()
        return len(self._cache)
