"""
Search request / response entities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from paper_discovery.domain.entities.paper import CanonicalPaper, PaperSource

DEFAULT_SOURCES: tuple[PaperSource, ...] = (
    PaperSource.OPENALEX,
    PaperSource.CROSSREF,
    PaperSource.SEMANTIC_SCHOLAR,
    PaperSource.ARXIV,
    PaperSource.CORE,
)


@dataclass
class SearchRequest:
    """
    Options for one search.

    Weights must each lie in [0, 1] and sum to at most 1; the remainder is
    the keyword weight. ``min_results=None`` uses the configured fallback
    threshold, ``timeout_ms=None`` uses 15 s (8 s in fast mode).
    ``exclude_ids`` holds canonical ids or DOIs of papers the caller already
    has; matching results are dropped before ranking.
    ``broader_search`` opts in to retrying thin results with term-pair
    sub-queries after the fallback chain.
    """

    max_results: int = 20
    min_results: int | None = None
    sources: list[str] = field(default_factory=lambda: [s.value for s in DEFAULT_SOURCES])
    use_internal_search: bool = False
    use_external_apis: bool = True
    fast_mode: bool = False
    timeout_ms: int | None = None
    from_year: int | None = 2000
    semantic_weight: float = 0.4
    authority_weight: float = 0.2
    recency_weight: float = 0.1
    local_region: str | None = None
    link_preprints: bool = True
    exclude_ids: list[str] = field(default_factory=list)
    broader_search: bool = False

    @property
    def keyword_weight(self) -> float:
        return max(0.0, 1.0 - self.semantic_weight - self.authority_weight - self.recency_weight)

    @property
    def effective_timeout_ms(self) -> int:
        if self.timeout_ms is not None:
            return self.timeout_ms
        return 8000 if self.fast_mode else 15000

    def requested_sources(self) -> list[PaperSource]:
        """Known source tags in request order; unknown tags are ignored."""
        seen: list[PaperSource] = []
        for tag in self.sources:
            source = PaperSource.parse(tag)
            if source is not None and source not in seen:
                seen.append(source)
        return seen


@dataclass
class SourceFailure:
    """A non-fatal error recorded for one source."""

    source: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"source": self.source, "message": self.message}


class SearchStatus(str, Enum):
    """Outcome class of a search, distinguishing no results from malfunction."""

    OK = "ok"
    PARTIAL = "partial"  # some sources failed but papers were found
    NO_RESULTS = "no_results"  # genuine empty result, no errors
    DEGRADED = "degraded"  # zero papers and at least one error


@dataclass
class SearchMetadata:
    strategies_used: list[str] = field(default_factory=list)
    per_source_counts: dict[str, int] = field(default_factory=dict)
    errors: list[SourceFailure] = field(default_factory=list)
    elapsed_ms: float = 0.0
    cache_hits: int = 0
    fallback_used: bool = False
    local_region_boost: bool = False
    local_papers_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategies_used": list(self.strategies_used),
            "per_source_counts": dict(self.per_source_counts),
            "errors": [e.to_dict() for e in self.errors],
            "elapsed_ms": round(self.elapsed_ms, 1),
            "cache_hits": self.cache_hits,
            "fallback_used": self.fallback_used,
            "local_region_boost": self.local_region_boost,
            "local_papers_count": self.local_papers_count,
        }


@dataclass
class SearchResponse:
    papers: list[CanonicalPaper] = field(default_factory=list)
    metadata: SearchMetadata = field(default_factory=SearchMetadata)

    @property
    def status(self) -> SearchStatus:
        if self.papers:
            return SearchStatus.PARTIAL if self.metadata.errors else SearchStatus.OK
        return SearchStatus.DEGRADED if self.metadata.errors else SearchStatus.NO_RESULTS

    @property
    def is_empty(self) -> bool:
        return not self.papers

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "papers": [p.to_dict() for p in self.papers],
            "metadata": self.metadata.to_dict(),
        }
