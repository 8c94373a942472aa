"""
Semantic Scholar Integration

API Documentation: https://api.semanticscholar.org/api-docs/

Requires an API key (``SEMANTIC_API_KEY``); shared anonymous quota is too
small to be useful under fan-out load.
"""

from __future__ import annotations

import logging
from typing import Any

from paper_discovery.domain.entities import PaperSource, RawResult
from paper_discovery.infrastructure.sources.base_client import (
    BaseSourceAdapter,
    as_dict,
    as_list,
    build_result,
    make_author,
    to_int,
)
from paper_discovery.shared.exceptions import ConfigurationError, ErrorContext, ParseError

logger = logging.getLogger(__name__)

S2_API_BASE = "https://api.semanticscholar.org/graph/v1"
S2_SEARCH_URL = f"{S2_API_BASE}/paper/search"
S2_PAPER_PAGE = "https://www.semanticscholar.org/paper"

DEFAULT_FIELDS = [
    "paperId",
    "title",
    "abstract",
    "year",
    "authors",
    "venue",
    "publicationVenue",
    "citationCount",
    "openAccessPdf",
    "externalIds",
    "url",
]


class SemanticScholarAdapter(BaseSourceAdapter):
    """Semantic Scholar paper search."""

    source = PaperSource.SEMANTIC_SCHOLAR
    _service_name = "SemanticScholar"
    _MAX_LIMIT = 100

    def __init__(self, api_key: str | None, **kwargs: Any) -> None:
        """
        Initialize adapter.

        Raises:
            ConfigurationError: if no API key is given
        """
        if not api_key:
            raise ConfigurationError(
                "Semantic Scholar requires an API key",
                context=ErrorContext(source="semantic_scholar", suggestion="Set SEMANTIC_API_KEY"),
            )
        self._api_key = api_key
        super().__init__(
            headers={
                "Accept": "application/json",
                "User-Agent": "paper-discovery/0.1",
                "x-api-key": api_key,
            },
            **kwargs,
        )

    async def _fetch(
        self,
        query: str,
        *,
        limit: int,
        from_year: int | None,
        timeout: float,
    ) -> list[RawResult]:
        params: dict[str, Any] = {
            "query": query,
            "limit": str(limit),
            "fields": ",".join(DEFAULT_FIELDS),
        }
        if from_year:
            params["year"] = f"{from_year}-"

        data = self._require_dict(
            await self._make_request(S2_SEARCH_URL, params=params, timeout=timeout),
            "semantic_scholar",
        )
        papers = data.get("data", [])
        if not isinstance(papers, list):
            raise ParseError("'data' is not a list", source="semantic_scholar")

        return self._normalize_records(papers, self._normalize_paper)

    @staticmethod
    def _normalize_paper(paper: dict[str, Any]) -> RawResult | None:
        external_ids = as_dict(paper.get("externalIds"))
        venue = paper.get("venue") or as_dict(paper.get("publicationVenue")).get("name")
        paper_id = paper.get("paperId")
        url = paper.get("url") or (f"{S2_PAPER_PAGE}/{paper_id}" if paper_id else None)

        return build_result(
            PaperSource.SEMANTIC_SCHOLAR,
            title=paper.get("title"),
            authors=[make_author(a.get("name")) for a in as_list(paper.get("authors")) if isinstance(a, dict)],
            year=to_int(paper.get("year")),
            abstract=paper.get("abstract"),
            venue=venue or None,
            doi=external_ids.get("DOI"),
            url=url,
            pdf_url=as_dict(paper.get("openAccessPdf")).get("url") or None,
            citation_count=to_int(paper.get("citationCount")),
        )
