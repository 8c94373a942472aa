"""
Runtime settings read from the environment.

Environment variables:
    PAPER_DISCOVERY_EMAIL                 polite-pool contact for OpenAlex / Crossref
    SEMANTIC_API_KEY                      Semantic Scholar API key
    CORE_API_KEY                          CORE API key
    PAPER_DISCOVERY_MIN_INTERVAL_MS       per-source minimum request interval
    PAPER_DISCOVERY_CACHE_TTL             default result cache TTL (seconds)
    PAPER_DISCOVERY_FALLBACK_SOURCES      comma-separated fallback chain
    PAPER_DISCOVERY_FALLBACK_MIN_RESULTS  default "too few results" threshold
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from .exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

DEFAULT_EMAIL = "paper-discovery@example.com"
DEFAULT_FALLBACK_CHAIN = ("openalex", "crossref", "semantic_scholar", "arxiv", "core")

# Per-source cache TTLs (seconds); sources not listed use cache_ttl
DEFAULT_SOURCE_CACHE_TTLS: dict[str, float] = {
    "openalex": 30 * 60,
    "crossref": 30 * 60,
    "semantic_scholar": 60 * 60,
    "arxiv": 15 * 60,
    "core": 30 * 60,
}


@dataclass
class SearchSettings:
    """Process-wide knobs shared by adapters and the orchestrator."""

    email: str = DEFAULT_EMAIL
    semantic_scholar_api_key: str | None = None
    core_api_key: str | None = None

    min_interval_ms: int = 1000
    cache_ttl: float = 300.0
    cache_max_size: int = 512
    source_cache_ttls: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_SOURCE_CACHE_TTLS))

    fallback_chain: tuple[str, ...] = DEFAULT_FALLBACK_CHAIN
    fallback_min_results: int = 5

    # Broader search: term-pair sub-queries when results stay thin
    broader_max_queries: int = 4
    broader_concurrency: int = 3

    # Per-source budget (seconds) inside the global deadline
    source_timeout: float = 15.0
    fast_source_timeout: float = 6.0
    per_source_limit_cap: int = 25

    # Circuit breaker
    breaker_failure_threshold: int = 3
    breaker_recovery_timeout: float = 300.0

    def cache_ttl_for(self, source: str) -> float:
        return self.source_cache_ttls.get(source, self.cache_ttl)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SearchSettings:
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        def _text(name: str) -> str | None:
            return env.get(name, "").strip() or None

        def _number(name: str, default: float, cast: type = float) -> float:
            raw = _text(name)
            if raw is None:
                return default
            try:
                return cast(raw)
            except ValueError:
                raise InvalidParameterError(name, raw, f"a {cast.__name__}") from None

        fallback_raw = _text("PAPER_DISCOVERY_FALLBACK_SOURCES")
        fallback_chain = (
            tuple(part.strip().lower() for part in fallback_raw.split(",") if part.strip())
            if fallback_raw
            else DEFAULT_FALLBACK_CHAIN
        )

        settings = cls(
            email=_text("PAPER_DISCOVERY_EMAIL") or DEFAULT_EMAIL,
            semantic_scholar_api_key=_text("SEMANTIC_API_KEY"),
            core_api_key=_text("CORE_API_KEY"),
            min_interval_ms=int(_number("PAPER_DISCOVERY_MIN_INTERVAL_MS", 1000, int)),
            cache_ttl=_number("PAPER_DISCOVERY_CACHE_TTL", 300.0),
            fallback_chain=fallback_chain,
            fallback_min_results=int(_number("PAPER_DISCOVERY_FALLBACK_MIN_RESULTS", 5, int)),
        )
        logger.debug(f"Loaded settings: fallback_chain={settings.fallback_chain}")
        return settings
