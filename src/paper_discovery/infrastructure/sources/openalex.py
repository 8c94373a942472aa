"""
OpenAlex Integration

API Documentation: https://docs.openalex.org/

Features:
- Completely free and open (no API key required)
- Comprehensive coverage (200M+ works)
- Polite pool via ``mailto`` for higher rate limits
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
from paper_discovery.shared.exceptions import ParseError
from paper_discovery.shared.settings import DEFAULT_EMAIL

logger = logging.getLogger(__name__)

OA_API_BASE = "https://api.openalex.org"
OA_WORKS_URL = f"{OA_API_BASE}/works"


class OpenAlexAdapter(BaseSourceAdapter):
    """
    OpenAlex works search.

    Usage:
        adapter = OpenAlexAdapter(email="your@email.com")
        results = await adapter.search("CRISPR gene editing", limit=10, from_year=2015)
    """

    source = PaperSource.OPENALEX
    _service_name = "OpenAlex"
    _MAX_LIMIT = 200

    def __init__(self, email: str | None = None, **kwargs: Any) -> None:
        """
        Initialize adapter.

        Args:
            email: Email for polite pool (higher rate limits)
            **kwargs: Passed to BaseSourceAdapter (timeouts, limiter, cache, ...)
        """
        self._email = email or DEFAULT_EMAIL
        super().__init__(
            headers={
                "User-Agent": f"paper-discovery/0.1 (mailto:{self._email})",
                "Accept": "application/json",
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
            "search": query,
            "per_page": str(limit),
            "sort": "cited_by_count:desc",
            "mailto": self._email,
        }
        if from_year:
            params["filter"] = f"from_publication_date:{from_year}-01-01"

        data = self._require_dict(await self._make_request(OA_WORKS_URL, params=params, timeout=timeout), "openalex")
        works = data.get("results")
        if not isinstance(works, list):
            raise ParseError("missing 'results' list", source="openalex")

        return self._normalize_records(works, self._normalize_work)

    def _normalize_work(self, work: dict[str, Any]) -> RawResult | None:
        """Map one OpenAlex work to a RawResult."""
        authors = []
        for authorship in as_list(work.get("authorships")):
            if not isinstance(authorship, dict):
                continue
            author = as_dict(authorship.get("author"))
            affiliations = [str(a) for a in as_list(authorship.get("raw_affiliation_strings")) if a] or [
                str(inst["display_name"])
                for inst in as_list(authorship.get("institutions"))
                if isinstance(inst, dict) and inst.get("display_name")
            ]
            authors.append(make_author(author.get("display_name"), "; ".join(affiliations) or None))

        primary_location = as_dict(work.get("primary_location"))
        venue_source = as_dict(primary_location.get("source"))
        best_oa = as_dict(work.get("best_oa_location"))

        doi = work.get("doi") or as_dict(work.get("ids")).get("doi")
        year = to_int(work.get("publication_year")) or parse_year(work.get("publication_date"))

        return build_result(
            PaperSource.OPENALEX,
            title=work.get("title") or work.get("display_name"),
            authors=authors,
            year=year,
            abstract=self._get_abstract(work),
            venue=venue_source.get("display_name"),
            doi=doi,
            url=primary_location.get("landing_page_url") or work.get("id"),
            pdf_url=best_oa.get("pdf_url"),
            citation_count=to_int(work.get("cited_by_count")),
        )

    @staticmethod
    def _get_abstract(work: dict[str, Any]) -> str | None:
        """
        Extract abstract from OpenAlex inverted index format.

        OpenAlex stores abstracts as {"word": [positions], ...}.
        """
        abstract_index = work.get("abstract_inverted_index")
        if not isinstance(abstract_index, dict) or not abstract_index:
            return None

        word_positions = []
        for word, positions in abstract_index.items():
            for pos in as_list(positions):
                if isinstance(pos, int):
                    word_positions.append((pos, word))

        word_positions.sort(key=lambda x: x[0])
        return " ".join(word for _, word in word_positions) or None
