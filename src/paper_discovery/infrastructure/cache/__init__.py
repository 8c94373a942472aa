"""Caching infrastructure."""

from .result_cache import DEFAULT_TTL, CacheStats, ResultCache

__all__ = ["DEFAULT_TTL", "CacheStats", "ResultCache"]
