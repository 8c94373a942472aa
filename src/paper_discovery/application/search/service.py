"""
PaperSearchService - the single public search entry point.

Pipeline:
    validate -> orchestrate (fan-out + fallback) -> rank -> deduplicate
             -> truncate -> region detection + regional boost -> response

Validation is the only stage that raises: a malformed request fails with
``CriticalConfigError`` before any network activity. Everything after it
reports problems through ``SearchResponse.metadata.errors``.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from paper_discovery.application.search.deduplication import deduplicate_papers
from paper_discovery.application.search.orchestrator import ParallelSearchOrchestrator
from paper_discovery.application.search.ranking import HybridRanker
from paper_discovery.application.search.regional import apply_regional_boost
from paper_discovery.domain.entities import (
    CanonicalPaper,
    RawResult,
    SearchMetadata,
    SearchRequest,
    SearchResponse,
)
from paper_discovery.domain.identifiers import normalize_doi
from paper_discovery.infrastructure.region import RegionDetector, normalize_country
from paper_discovery.shared.exceptions import InvalidParameterError

if TYPE_CHECKING:
    from paper_discovery.infrastructure.embeddings import Embedder
    from paper_discovery.infrastructure.sources import PaperStore
    from paper_discovery.shared.settings import SearchSettings

logger = logging.getLogger(__name__)

# Float slack when checking that the weights sum to at most 1
_WEIGHT_EPSILON = 1e-9


def validate_request(query: str, request: SearchRequest) -> None:
    """Raise InvalidParameterError for the first malformed option."""
    if not isinstance(query, str) or not query.strip():
        raise InvalidParameterError("query", query, "a non-empty string")

    if request.max_results < 1:
        raise InvalidParameterError("max_results", request.max_results, "an integer >= 1")
    if request.min_results is not None and request.min_results < 0:
        raise InvalidParameterError("min_results", request.min_results, "an integer >= 0")
    if request.timeout_ms is not None and request.timeout_ms <= 0:
        raise InvalidParameterError("timeout_ms", request.timeout_ms, "a positive number of milliseconds")
    if request.from_year is not None and request.from_year < 0:
        raise InvalidParameterError("from_year", request.from_year, "a non-negative year")
    if any(not isinstance(item, str) for item in request.exclude_ids):
        raise InvalidParameterError("exclude_ids", request.exclude_ids, "a list of canonical ids or DOIs")

    weights = {
        "semantic_weight": request.semantic_weight,
        "authority_weight": request.authority_weight,
        "recency_weight": request.recency_weight,
    }
    for name, value in weights.items():
        if not 0.0 <= value <= 1.0:
            raise InvalidParameterError(name, value, "a float in [0, 1]")
    total = sum(weights.values())
    if total > 1.0 + _WEIGHT_EPSILON:
        raise InvalidParameterError("weights", round(total, 6), "semantic + authority + recency <= 1")


def exclude_known(results: list[RawResult], exclude_ids: list[str]) -> list[RawResult]:
    """Drop results whose canonical id or normalized DOI the caller excluded."""
    if not exclude_ids:
        return results
    ids = {item.strip() for item in exclude_ids if item.strip()}
    dois = {doi for doi in (normalize_doi(item) for item in ids) if doi}
    kept = [r for r in results if r.canonical_id not in ids and normalize_doi(r.doi) not in dois]
    if len(kept) < len(results):
        logger.debug(f"Excluded {len(results) - len(kept)} already known results")
    return kept


class PaperSearchService:
    """
    Multi-source paper search with ranking, deduplication and regional boost.

    Usage:
        service = PaperSearchService.from_settings()
        response = await service.search("CRISPR off-target effects")
        for paper in response.papers:
            print(paper.title, paper.doi)
    """

    def __init__(
        self,
        orchestrator: ParallelSearchOrchestrator,
        ranker: HybridRanker | None = None,
        region_detector: RegionDetector | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._ranker = ranker or HybridRanker()
        self._region_detector = region_detector or RegionDetector()

    @classmethod
    def from_settings(
        cls,
        settings: SearchSettings | None = None,
        *,
        store: PaperStore | None = None,
        embedder: Embedder | None = None,
    ) -> PaperSearchService:
        """Wire a service from settings (environment when omitted)."""
        from paper_discovery.container import create_container

        return create_container(settings, store=store, embedder=embedder).search_service()

    @property
    def orchestrator(self) -> ParallelSearchOrchestrator:
        return self._orchestrator

    async def search(self, query: str, request: SearchRequest | None = None) -> SearchResponse:
        """
        Run one search.

        Args:
            query: Free-text research query
            request: Options; defaults to ``SearchRequest()``

        Returns:
            SearchResponse with ranked canonical papers. An empty ``papers``
            list with non-empty ``metadata.errors`` means degraded service,
            with empty errors it means a genuine no-results query.

        Raises:
            InvalidParameterError: Malformed options, raised before any I/O
        """
        request = request or SearchRequest()
        validate_request(query, request)
        query = query.strip()
        started = time.perf_counter()

        merged = await self._orchestrator.run(query, request)
        candidates = exclude_known(merged.results, request.exclude_ids)
        remaining = request.effective_timeout_ms / 1000 - (time.perf_counter() - started)
        ranked = await self._ranker.rank(query, candidates, request, timeout=max(remaining, 0.0))
        papers = deduplicate_papers(ranked, link_preprints=request.link_preprints)
        papers = papers[: request.max_results]

        metadata = SearchMetadata(
            strategies_used=merged.strategies_used,
            per_source_counts=merged.per_source_counts,
            errors=merged.errors,
            cache_hits=merged.cache_hits,
            fallback_used=merged.fallback_used,
        )

        local_region = normalize_country(request.local_region)
        if local_region and papers:
            self._attach_regions(papers)
            boost = apply_regional_boost(papers, local_region)
            papers = boost.papers
            metadata.local_region_boost = boost.boosted
            metadata.local_papers_count = boost.local_count

        metadata.elapsed_ms = (time.perf_counter() - started) * 1000
        response = SearchResponse(papers=papers, metadata=metadata)
        logger.info(
            f"Search '{query[:60]}': {len(papers)} papers, status={response.status.value}, "
            f"{metadata.elapsed_ms:.0f}ms"
        )
        return response

    def _attach_regions(self, papers: list[CanonicalPaper]) -> None:
        for paper in papers:
            if paper.region:
                continue
            paper.region = self._region_detector.detect_paper(paper).country

    async def close(self) -> None:
        for adapter in self._orchestrator.adapters.values():
            await adapter.close()
