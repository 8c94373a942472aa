"""
HybridRanker - combined relevance from four comparable signals.

Every signal is in [0, 1]:
    semantic   cosine(query embedding, title+abstract embedding), 0 if unavailable
    keyword    query-term overlap with title (0.6) and abstract (0.4)
    authority  log-saturating citation count
    recency    exponential decay by age, floored so undated papers are "old", not zero

    combined = ws*semantic + wa*authority + wr*recency + (1 - ws - wa - wr)*keyword

Sort key: combined desc, citation count desc, year desc. Python's sort is
stable, so identical keys keep their input order and the output is
reproducible for identical inputs.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from paper_discovery.domain.entities import RawResult, ScoredResult
from paper_discovery.infrastructure.embeddings import cosine_similarity

if TYPE_CHECKING:
    from paper_discovery.domain.entities import SearchRequest
    from paper_discovery.infrastructure.embeddings import Embedder

logger = logging.getLogger(__name__)

_TERM = re.compile(r"\b\w{3,}\b")

STOPWORDS = frozenset(
    {
        "and", "for", "the", "with", "from", "into", "that", "this", "are", "was",
        "were", "using", "based", "via", "its", "their", "our", "how", "what", "why",
    }
)  # fmt: skip


@dataclass(frozen=True)
class RankingConfig:
    """Shape of the authority / recency curves."""

    # Citations at which authority reaches 1.0
    authority_saturation: int = 10_000
    # Score halves every N years
    recency_half_life_years: float = 5.0
    # Lowest recency; undated papers get exactly this
    recency_floor: float = 0.1
    title_keyword_share: float = 0.6


def ordered_terms(text: str | None) -> list[str]:
    """Distinct terms in first-seen order."""
    if not text:
        return []
    return list(dict.fromkeys(t for t in _TERM.findall(text.lower()) if t not in STOPWORDS))


def query_terms(text: str | None) -> set[str]:
    return set(ordered_terms(text))


class HybridRanker:
    """
    Scores raw results and orders them by combined score.

    Usage:
        ranker = HybridRanker(embedder=my_embedder)
        ranked = await ranker.rank("graph neural networks", raw_results, request)
    """

    def __init__(
        self,
        embedder: Embedder | None = None,
        config: RankingConfig | None = None,
        current_year: int | None = None,
    ) -> None:
        self._embedder = embedder
        self._config = config or RankingConfig()
        self._current_year = current_year

    @property
    def current_year(self) -> int:
        return self._current_year or datetime.now(tz=timezone.utc).year

    async def rank(
        self,
        query: str,
        results: Sequence[RawResult],
        request: SearchRequest,
        timeout: float | None = None,
    ) -> list[ScoredResult]:
        """
        Score every result and return them sorted, best first.

        ``timeout`` bounds the embedding calls in seconds; when it runs out
        every semantic score is 0 and ranking falls back to the other signals.
        """
        if not results:
            return []

        semantic = await self._semantic_scores(query, results, request.semantic_weight, timeout)
        terms = query_terms(query)

        scored = [
            self.score(
                result,
                terms,
                semantic_score=semantic[i],
                semantic_weight=request.semantic_weight,
                authority_weight=request.authority_weight,
                recency_weight=request.recency_weight,
            )
            for i, result in enumerate(results)
        ]
        return sort_scored(scored)

    def score(
        self,
        result: RawResult,
        terms: set[str],
        *,
        semantic_score: float,
        semantic_weight: float,
        authority_weight: float,
        recency_weight: float,
    ) -> ScoredResult:
        keyword = self.keyword_score(terms, result)
        authority = self.authority_score(result.citation_count)
        recency = self.recency_score(result.year)
        keyword_weight = max(0.0, 1.0 - semantic_weight - authority_weight - recency_weight)

        combined = (
            semantic_weight * semantic_score
            + authority_weight * authority
            + recency_weight * recency
            + keyword_weight * keyword
        )
        return ScoredResult.from_raw(
            result,
            semantic_score=semantic_score,
            keyword_score=keyword,
            authority_score=authority,
            recency_score=recency,
            combined_score=_clamp(combined),
        )

    # =========================================================================
    # Scoring Functions
    # =========================================================================

    def keyword_score(self, terms: set[str], result: RawResult) -> float:
        if not terms:
            return 0.0
        title_terms = query_terms(result.title)
        abstract_terms = query_terms(result.abstract)
        title_overlap = len(terms & title_terms) / len(terms)
        abstract_overlap = len(terms & abstract_terms) / len(terms)
        share = self._config.title_keyword_share
        return _clamp(title_overlap * share + abstract_overlap * (1 - share))

    def authority_score(self, citation_count: int | None) -> float:
        if not citation_count or citation_count <= 0:
            return 0.0
        saturation = math.log10(self._config.authority_saturation + 1)
        return _clamp(math.log10(citation_count + 1) / saturation)

    def recency_score(self, year: int | None) -> float:
        floor = self._config.recency_floor
        if not year:
            return floor
        age = max(self.current_year - year, 0)  # Future year (preprint dates)
        decay = 0.5 ** (age / self._config.recency_half_life_years)
        return max(floor, float(decay))

    async def _semantic_scores(
        self,
        query: str,
        results: Sequence[RawResult],
        weight: float,
        timeout: float | None = None,
    ) -> list[float]:
        zeros = [0.0] * len(results)
        if self._embedder is None or weight <= 0:
            return zeros
        if timeout is not None and timeout <= 0:
            logger.warning("No time left for embeddings, semantic scores set to 0")
            return zeros

        try:
            return await asyncio.wait_for(self._embed_and_compare(query, results), timeout)
        except TimeoutError:
            logger.warning(f"Embeddings exceeded {timeout:.2f}s, semantic scores set to 0")
            return zeros

    async def _embed_and_compare(self, query: str, results: Sequence[RawResult]) -> list[float]:
        query_vector = await self._safe_embed(query)
        if not query_vector:
            return [0.0] * len(results)

        texts = [f"{r.title}\n{r.abstract or ''}".strip() for r in results]
        vectors = await asyncio.gather(*(self._safe_embed(t) for t in texts))
        return [_clamp(cosine_similarity(query_vector, v)) if v else 0.0 for v in vectors]

    async def _safe_embed(self, text: str) -> Sequence[float] | None:
        try:
            return await self._embedder.embed(text)
        except Exception as e:
            # Missing semantic signal degrades to keyword ranking
            logger.warning(f"Embedding failed, semantic score set to 0: {e}")
            return None


def sort_key(result: ScoredResult) -> tuple[float, int, int]:
    return (-result.combined_score, -result.citations, -(result.year or 0))


def sort_scored(results: list[ScoredResult]) -> list[ScoredResult]:
    return sorted(results, key=sort_key)


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))
