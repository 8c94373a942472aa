"""
Application DI Container (dependency-injector).

Centralizes creation of the search pipeline so the MCP server, library
callers and tests all get the same wiring.

Usage::

    from paper_discovery.container import create_container

    container = create_container()          # settings from the environment
    service = container.search_service()

    # In tests, override any provider:
    container.source_adapters.override(providers.Object({PaperSource.OPENALEX: fake}))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dependency_injector import containers, providers

from paper_discovery.shared.settings import SearchSettings

if TYPE_CHECKING:
    from paper_discovery.infrastructure.embeddings import Embedder
    from paper_discovery.infrastructure.sources import PaperStore

logger = logging.getLogger(__name__)


def _create_result_cache(settings: SearchSettings) -> object:
    """Lazy factory for ResultCache (avoids top-level import)."""
    from paper_discovery.infrastructure.cache import ResultCache

    return ResultCache(max_size=settings.cache_max_size, default_ttl=settings.cache_ttl)


def _create_rate_limiters(settings: SearchSettings) -> object:
    from paper_discovery.shared.async_utils import RateLimiterRegistry

    return RateLimiterRegistry(min_interval=settings.min_interval_ms / 1000)


def _create_source_adapters(
    settings: SearchSettings,
    cache: object,
    rate_limiters: object,
    store: PaperStore | None,
) -> object:
    """Lazy factory for the per-source adapter registry."""
    from paper_discovery.infrastructure.sources import build_source_adapters

    adapters = build_source_adapters(settings, cache=cache, rate_limiters=rate_limiters, store=store)
    logger.info(f"Configured sources: {[source.value for source in adapters]}")
    return adapters


def _create_ranker(embedder: Embedder | None) -> object:
    from paper_discovery.application.search.ranking import HybridRanker

    return HybridRanker(embedder=embedder)


def _create_region_detector() -> object:
    from paper_discovery.infrastructure.region import RegionDetector

    return RegionDetector()


def _create_orchestrator(adapters: object, settings: SearchSettings) -> object:
    from paper_discovery.application.search.orchestrator import ParallelSearchOrchestrator

    return ParallelSearchOrchestrator(adapters, settings)


def _create_search_service(orchestrator: object, ranker: object, region_detector: object) -> object:
    from paper_discovery.application.search.service import PaperSearchService

    return PaperSearchService(orchestrator, ranker=ranker, region_detector=region_detector)


class ApplicationContainer(containers.DeclarativeContainer):
    """Central DI container for the paper discovery pipeline.

    Manages creation and lifecycle of:
    - ``settings``: process-wide SearchSettings (environment by default)
    - ``result_cache`` / ``rate_limiters``: state shared by all adapters
    - ``source_adapters``: registry of configured sources
    - ``orchestrator`` / ``ranker`` / ``region_detector``
    - ``search_service``: the public entry point
    """

    settings = providers.Singleton(SearchSettings.from_env)

    # Optional collaborators
    store = providers.Object(None)
    embedder = providers.Object(None)

    result_cache = providers.Singleton(_create_result_cache, settings=settings)
    rate_limiters = providers.Singleton(_create_rate_limiters, settings=settings)

    source_adapters = providers.Singleton(
        _create_source_adapters,
        settings=settings,
        cache=result_cache,
        rate_limiters=rate_limiters,
        store=store,
    )

    ranker = providers.Singleton(_create_ranker, embedder=embedder)
    region_detector = providers.Singleton(_create_region_detector)

    orchestrator = providers.Singleton(
        _create_orchestrator,
        adapters=source_adapters,
        settings=settings,
    )

    search_service = providers.Singleton(
        _create_search_service,
        orchestrator=orchestrator,
        ranker=ranker,
        region_detector=region_detector,
    )


def create_container(
    settings: SearchSettings | None = None,
    *,
    store: PaperStore | None = None,
    embedder: Embedder | None = None,
) -> ApplicationContainer:
    """Build a container, overriding the defaults that were passed in."""
    container = ApplicationContainer()
    if settings is not None:
        container.settings.override(providers.Object(settings))
    if store is not None:
        container.store.override(providers.Object(store))
    if embedder is not None:
        container.embedder.override(providers.Object(embedder))
    return container


__all__ = ["ApplicationContainer", "create_container"]
