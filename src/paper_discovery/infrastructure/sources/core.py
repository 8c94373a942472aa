"""
CORE API Integration

API Documentation: https://api.core.ac.uk/docs/v3

CORE aggregates open access research from repositories worldwide.
Requires an API key (``CORE_API_KEY``).
"""

from __future__ import annotations

import logging
from typing import Any

from paper_discovery.domain.entities import PaperSource, RawResult
from paper_discovery.domain.identifiers import parse_year
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

CORE_API_BASE = "https://api.core.ac.uk/v3"
CORE_SEARCH_URL = f"{CORE_API_BASE}/search/works"
CORE_WORK_PAGE = "https://core.ac.uk/works"


class COREAdapter(BaseSourceAdapter):
    """CORE open access works search."""

    source = PaperSource.CORE
    _service_name = "CORE"
    _MAX_LIMIT = 100

    def __init__(self, api_key: str | None, **kwargs: Any) -> None:
        """
        Initialize adapter.

        Raises:
            ConfigurationError: if no API key is given
        """
        if not api_key:
            raise ConfigurationError(
                "CORE requires an API key",
                context=ErrorContext(source="core", suggestion="Set CORE_API_KEY"),
            )
        self._api_key = api_key
        super().__init__(
            headers={
                "Accept": "application/json",
                "Authorization": f"Bearer {api_key}",
                "User-Agent": "paper-discovery/0.1",
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
        q = f"({query}) AND yearPublished>={from_year}" if from_year else query
        data = self._require_dict(
            await self._make_request(
                CORE_SEARCH_URL,
                method="POST",
                json_body={"q": q, "limit": limit},
                timeout=timeout,
            ),
            "core",
        )
        works = data.get("results", [])
        if not isinstance(works, list):
            raise ParseError("'results' is not a list", source="core")

        return self._normalize_records(works, self._normalize_work)

    @staticmethod
    def _normalize_work(work: dict[str, Any]) -> RawResult | None:
        journals = as_list(work.get("journals"))
        venue = as_dict(journals[0]).get("title") if journals else None

        url = None
        for link in as_list(work.get("links")):
            if isinstance(link, dict) and link.get("type") == "display":
                url = link.get("url")
                break
        if url is None and work.get("id") is not None:
            url = f"{CORE_WORK_PAGE}/{work['id']}"

        return build_result(
            PaperSource.CORE,
            title=work.get("title"),
            authors=[make_author(a.get("name")) for a in as_list(work.get("authors")) if isinstance(a, dict)],
            year=to_int(work.get("yearPublished")) or parse_year(work.get("publishedDate")),
            abstract=work.get("abstract"),
            venue=venue or work.get("publisher"),
            doi=work.get("doi"),
            url=url,
            pdf_url=work.get("downloadUrl") or None,
            citation_count=to_int(work.get("citationCount")),
        )
