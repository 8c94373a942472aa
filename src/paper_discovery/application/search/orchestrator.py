"""
Parallel Search Orchestrator - concurrent fan-out under a global deadline.

    ┌──────────── run(query, request) ─────────────┐
    │  deadline = now + timeout_ms                 │
    │                                              │
    │  fan-out: one task per source                │
    │    each task: wait_for(adapter, allotment)   │
    │    allotment = min(source budget, remaining) │
    │  asyncio.wait(tasks, timeout=remaining)      │
    │    stragglers are cancelled -> timeout error │
    │                                              │
    │  too few results and time left?              │
    │    fallback chain, one source at a time      │
    │  still too few and broader_search requested? │
    │    term-pair sub-queries, 3 at a time        │
    └──────────────────────────────────────────────┘

Partial success is the normal case: every source either contributes
results or a ``{source, message}`` error, never an exception. Results are
merged in request order (not completion order), so the merged list is
deterministic for identical source responses.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from paper_discovery.application.search.ranking import ordered_terms
from paper_discovery.domain.entities import PaperSource, RawResult, SourceFailure
from paper_discovery.infrastructure.sources.base_client import SourceOutcome
from paper_discovery.shared.settings import SearchSettings

if TYPE_CHECKING:
    from paper_discovery.domain.entities import SearchRequest
    from paper_discovery.infrastructure.sources import BaseSourceAdapter

logger = logging.getLogger(__name__)

# Strategy tag recorded when term-pair sub-queries contributed results
BROADER_SEARCH = "broader_search"


def broader_queries(query: str, max_queries: int = 4) -> list[str]:
    """
    Pairs of distinct query terms in query order.

    >>> broader_queries("malaria vaccine efficacy trials", 4)
    ['malaria vaccine', 'malaria efficacy', 'malaria trials', 'vaccine efficacy']

    Queries with fewer than three terms have no pair narrower than the query
    itself, so they get none.
    """
    terms = ordered_terms(query)
    if len(terms) < 3:
        return []
    pairs = itertools.islice(itertools.combinations(terms, 2), max_queries)
    return [f"{a} {b}" for a, b in pairs]


@dataclass
class OrchestrationResult:
    """Merged raw results of a fan-out plus what happened per source."""

    results: list[RawResult] = field(default_factory=list)
    strategies_used: list[str] = field(default_factory=list)
    per_source_counts: dict[str, int] = field(default_factory=dict)
    errors: list[SourceFailure] = field(default_factory=list)
    cache_hits: int = 0
    fallback_used: bool = False
    elapsed_ms: float = 0.0

    @property
    def is_empty(self) -> bool:
        return not self.results

    def merge(self, outcome: SourceOutcome) -> None:
        tag = outcome.source.value
        if tag not in self.strategies_used:
            self.strategies_used.append(tag)
        self.per_source_counts[tag] = self.per_source_counts.get(tag, 0) + len(outcome.results)
        if outcome.error:
            self.errors.append(SourceFailure(source=tag, message=outcome.error))
        if outcome.cache_hit:
            self.cache_hits += 1
        self.results.extend(outcome.results)


class ParallelSearchOrchestrator:
    """
    Runs enabled sources concurrently and tolerates partial failure.

    Usage:
        orchestrator = ParallelSearchOrchestrator(adapters, settings)
        merged = await orchestrator.run("protein folding", SearchRequest())
        merged.results, merged.errors
    """

    def __init__(
        self,
        adapters: Mapping[PaperSource, BaseSourceAdapter],
        settings: SearchSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._adapters = dict(adapters)
        self._settings = settings or SearchSettings()
        self._clock = clock

    @property
    def adapters(self) -> dict[PaperSource, BaseSourceAdapter]:
        return self._adapters

    # =========================================================================
    # Policy
    # =========================================================================

    def select_sources(self, request: SearchRequest) -> list[PaperSource]:
        """Sources for the primary fan-out, in request order."""
        selected: list[PaperSource] = []
        if request.use_external_apis:
            for source in request.requested_sources():
                if source is PaperSource.INTERNAL:
                    continue
                if source not in self._adapters:
                    logger.debug(f"Source {source.value} not configured, skipping")
                    continue
                selected.append(source)

        if request.use_internal_search:
            if PaperSource.INTERNAL in self._adapters:
                selected.append(PaperSource.INTERNAL)
            else:
                logger.warning("Internal search requested but no paper store is configured")
        return selected

    def per_source_limit(self, request: SearchRequest) -> int:
        limit = min(request.max_results, self._settings.per_source_limit_cap)
        if request.fast_mode:
            limit //= 2
        return max(1, limit)

    def _allotment(self, request: SearchRequest, deadline: float) -> float:
        budget = self._settings.fast_source_timeout if request.fast_mode else self._settings.source_timeout
        return min(budget, deadline - self._clock())

    # =========================================================================
    # Execution
    # =========================================================================

    async def run(self, query: str, request: SearchRequest) -> OrchestrationResult:
        started = self._clock()
        timeout_ms = request.effective_timeout_ms
        deadline = started + timeout_ms / 1000
        merged = OrchestrationResult()

        sources = self.select_sources(request)
        await self._fan_out(query, request, sources, deadline, merged)

        min_results = request.min_results if request.min_results is not None else self._settings.fallback_min_results
        if len(merged.results) < min_results and request.use_external_apis:
            await self._run_fallback(query, request, set(sources), deadline, min_results, merged)

        if request.broader_search and len(merged.results) < min_results and deadline - self._clock() > 0:
            await self._run_broader_search(query, request, deadline, merged)

        merged.elapsed_ms = (self._clock() - started) * 1000
        logger.info(
            f"Fan-out done: {len(merged.results)} results from {merged.strategies_used} "
            f"in {merged.elapsed_ms:.0f}ms ({len(merged.errors)} errors)"
        )
        return merged

    async def _fan_out(
        self,
        query: str,
        request: SearchRequest,
        sources: list[PaperSource],
        deadline: float,
        merged: OrchestrationResult,
    ) -> None:
        if not sources:
            return

        tasks: dict[PaperSource, asyncio.Task[SourceOutcome]] = {}
        for source in sources:
            allotment = self._allotment(request, deadline)
            tasks[source] = asyncio.create_task(
                self._run_source(source, query, request, allotment),
                name=f"search:{source.value}",
            )

        remaining = max(0.0, deadline - self._clock())
        _done, pending = await asyncio.wait(tasks.values(), timeout=remaining)

        if pending:
            for task in pending:
                task.cancel()
            # Let cancellation reach the in-flight requests before moving on
            await asyncio.gather(*pending, return_exceptions=True)

        for source, task in tasks.items():
            if task in pending or task.cancelled():
                logger.warning(f"{source.value}: abandoned at global deadline ({request.effective_timeout_ms}ms)")
                merged.merge(
                    SourceOutcome(
                        source=source,
                        error=f"Timed out: global deadline of {request.effective_timeout_ms}ms reached",
                    )
                )
                continue
            merged.merge(task.result())

    async def _run_fallback(
        self,
        query: str,
        request: SearchRequest,
        tried: set[PaperSource],
        deadline: float,
        min_results: int,
        merged: OrchestrationResult,
    ) -> None:
        """Try untried sources one at a time until min_results is met."""
        for tag in self._settings.fallback_chain:
            if len(merged.results) >= min_results:
                break
            source = PaperSource.parse(tag)
            if source is None or source in tried or source not in self._adapters:
                continue
            if deadline - self._clock() <= 0:
                logger.info("Fallback chain stopped: no time left")
                break

            logger.info(f"Only {len(merged.results)}/{min_results} results, falling back to {source.value}")
            merged.fallback_used = True
            tried.add(source)
            merged.merge(await self._run_source(source, query, request, self._allotment(request, deadline)))

    async def _run_broader_search(
        self,
        query: str,
        request: SearchRequest,
        deadline: float,
        merged: OrchestrationResult,
    ) -> None:
        """
        Fill the remaining slots with results of term-pair sub-queries.

        Sub-queries run against the sources that already answered without
        error, at most ``broader_concurrency`` at a time. Each gets half the
        request timeout and none outlives the global deadline. Results already
        merged (by canonical id) are skipped.
        """
        slots = request.max_results - len(merged.results)
        sub_queries = broader_queries(query, self._settings.broader_max_queries)
        failed = {e.source for e in merged.errors}
        sources = [
            source
            for source in (PaperSource.parse(tag) for tag in merged.strategies_used)
            if source is not None and source.value not in failed and source in self._adapters
        ]
        if slots <= 0 or not sub_queries or not sources:
            return

        logger.info(f"Only {len(merged.results)} results, broader search with {sub_queries}")
        half_timeout = request.effective_timeout_ms / 1000 / 2
        gate = asyncio.Semaphore(self._settings.broader_concurrency)

        async def run_one(sub_query: str) -> list[SourceOutcome]:
            async with gate:
                allotment = min(half_timeout, deadline - self._clock())
                if allotment <= 0:
                    return []
                return list(
                    await asyncio.gather(
                        *(self._run_source(source, sub_query, request, allotment) for source in sources)
                    )
                )

        tasks = [asyncio.create_task(run_one(q), name=f"broader:{q}") for q in sub_queries]
        remaining = max(0.0, deadline - self._clock())
        _done, pending = await asyncio.wait(tasks, timeout=remaining)
        if pending:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        seen = {r.canonical_id for r in merged.results}
        added = 0
        for sub_query, task in zip(sub_queries, tasks, strict=True):
            if task in pending or task.cancelled():
                logger.warning(f"Broader search '{sub_query}': abandoned at global deadline")
                continue
            for outcome in task.result():
                tag = outcome.source.value
                if outcome.error:
                    message = f"Broader search '{sub_query}': {outcome.error}"
                    merged.errors.append(SourceFailure(source=tag, message=message))
                if outcome.cache_hit:
                    merged.cache_hits += 1
                for result in outcome.results:
                    if added >= slots or result.canonical_id in seen:
                        continue
                    seen.add(result.canonical_id)
                    merged.results.append(result)
                    merged.per_source_counts[tag] = merged.per_source_counts.get(tag, 0) + 1
                    added += 1

        logger.info(f"Broader search added {added} results")
        if added:
            merged.strategies_used.append(BROADER_SEARCH)

    async def _run_source(
        self,
        source: PaperSource,
        query: str,
        request: SearchRequest,
        allotment: float,
    ) -> SourceOutcome:
        if allotment <= 0:
            return SourceOutcome(source=source, error="Timed out: no time left in the search budget")

        adapter = self._adapters[source]
        started = time.perf_counter()
        try:
            outcome = await asyncio.wait_for(
                adapter.search_with_outcome(
                    query,
                    limit=self.per_source_limit(request),
                    from_year=request.from_year,
                    fast_mode=request.fast_mode,
                ),
                timeout=allotment,
            )
        except TimeoutError:
            logger.warning(f"{source.value}: timed out after {allotment * 1000:.0f}ms")
            return SourceOutcome(
                source=source,
                error=f"Timed out after {allotment * 1000:.0f}ms",
                elapsed_ms=(time.perf_counter() - started) * 1000,
            )
        except Exception as e:
            logger.exception(f"{source.value}: adapter raised: {e}")
            return SourceOutcome(source=source, error=f"Unexpected error: {e}")

        logger.info(f"{source.value}: {len(outcome.results)} results in {outcome.elapsed_ms:.0f}ms")
        return outcome
