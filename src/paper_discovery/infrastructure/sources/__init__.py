"""
Bibliographic Source Adapters

One adapter per external database, all sharing the ``BaseSourceAdapter``
contract. ``build_source_adapters`` assembles the registry the
orchestrator fans out over.

    ┌─────────────────────────────────────────────────────────┐
    │              ParallelSearchOrchestrator                 │
    │  ┌──────────┬──────────┬──────────┬────────┬────────┐   │
    │  │ OpenAlex │ CrossRef │ Sem. S2  │ arXiv  │  CORE  │   │
    │  │          │          │  (key)   │        │ (key)  │   │
    │  └──────────┴──────────┴──────────┴────────┴────────┘   │
    │  ┌───────────────────────────────────────────────────┐  │
    │  │        Internal paper store (optional)            │  │
    │  └───────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from paper_discovery.domain.entities import PaperSource
from paper_discovery.shared.async_utils import CircuitBreaker, RateLimiterRegistry

from .arxiv import ArXivAdapter
from .base_client import BaseSourceAdapter, SourceOutcome
from .core import COREAdapter
from .crossref import CrossRefAdapter
from .internal import InternalSearchAdapter, PaperStore
from .openalex import OpenAlexAdapter
from .semantic_scholar import SemanticScholarAdapter

if TYPE_CHECKING:
    from paper_discovery.infrastructure.cache import ResultCache
    from paper_discovery.shared.settings import SearchSettings

logger = logging.getLogger(__name__)


def build_source_adapters(
    settings: SearchSettings,
    *,
    cache: ResultCache | None = None,
    rate_limiters: RateLimiterRegistry | None = None,
    store: PaperStore | None = None,
) -> dict[PaperSource, BaseSourceAdapter]:
    """
    Create every adapter the current configuration allows.

    Sources that need a credential are skipped (not failed) when it is
    missing; the internal source is registered only when a store is given.
    """
    limiters = rate_limiters or RateLimiterRegistry(min_interval=settings.min_interval_ms / 1000)

    def common(source: PaperSource) -> dict:
        return {
            "timeout": settings.source_timeout,
            "fast_timeout": settings.fast_source_timeout,
            "rate_limiter": limiters.get(source.value),
            "cache": cache,
            "cache_ttl": settings.cache_ttl_for(source.value),
            "circuit_breaker": CircuitBreaker(
                failure_threshold=settings.breaker_failure_threshold,
                recovery_timeout=settings.breaker_recovery_timeout,
            ),
        }

    adapters: dict[PaperSource, BaseSourceAdapter] = {
        PaperSource.OPENALEX: OpenAlexAdapter(email=settings.email, **common(PaperSource.OPENALEX)),
        PaperSource.CROSSREF: CrossRefAdapter(email=settings.email, **common(PaperSource.CROSSREF)),
    }

    if settings.semantic_scholar_api_key:
        adapters[PaperSource.SEMANTIC_SCHOLAR] = SemanticScholarAdapter(
            api_key=settings.semantic_scholar_api_key,
            **common(PaperSource.SEMANTIC_SCHOLAR),
        )
    else:
        logger.info("Semantic Scholar disabled: SEMANTIC_API_KEY not set")

    adapters[PaperSource.ARXIV] = ArXivAdapter(**common(PaperSource.ARXIV))

    if settings.core_api_key:
        adapters[PaperSource.CORE] = COREAdapter(api_key=settings.core_api_key, **common(PaperSource.CORE))
    else:
        logger.info("CORE disabled: CORE_API_KEY not set")

    if store is not None:
        internal = common(PaperSource.INTERNAL)
        # Local store results are always fresh
        internal["cache"] = None
        adapters[PaperSource.INTERNAL] = InternalSearchAdapter(store, **internal)

    return adapters


__all__ = [
    "ArXivAdapter",
    "BaseSourceAdapter",
    "COREAdapter",
    "CrossRefAdapter",
    "InternalSearchAdapter",
    "OpenAlexAdapter",
    "PaperStore",
    "SemanticScholarAdapter",
    "SourceOutcome",
    "build_source_adapters",
]
