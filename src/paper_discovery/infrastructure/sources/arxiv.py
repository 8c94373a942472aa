"""
arXiv Integration

Atom feed search over http://export.arxiv.org/api/query.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import defusedxml.ElementTree as ET  # Security: prevent XML attacks
from defusedxml import DefusedXmlException

from paper_discovery.domain.entities import PaperSource, RawResult
from paper_discovery.domain.identifiers import parse_year
from paper_discovery.infrastructure.sources.base_client import BaseSourceAdapter, build_result, make_author
from paper_discovery.shared.exceptions import ParseError

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

ARXIV_API_URL = "http://export.arxiv.org/api/query"

NAMESPACES = {
    "atom": "http://www.w3.org/2005/Atom",
    "arxiv": "http://arxiv.org/schemas/atom",
}


class ArXivAdapter(BaseSourceAdapter):
    """arXiv preprint search."""

    source = PaperSource.ARXIV
    _service_name = "arXiv"
    _MAX_LIMIT = 100

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(headers={"User-Agent": "paper-discovery/0.1"}, **kwargs)

    def _parse_response(self, response: httpx.Response, expect_json: bool) -> Any:
        return response.text

    @staticmethod
    def build_query(query: str, from_year: int | None) -> str:
        """``all:"..."`` phrase query, optionally bounded by submission date."""
        escaped = query.replace('"', " ").replace(":", " ").replace("(", " ").replace(")", " ")
        search_query = f'all:"{" ".join(escaped.split())}"'
        if from_year:
            to_date = datetime.now(tz=timezone.utc).strftime("%Y%m%d2359")
            search_query += f" AND submittedDate:[{from_year}01010000 TO {to_date}]"
        return search_query

    async def _fetch(
        self,
        query: str,
        *,
        limit: int,
        from_year: int | None,
        timeout: float,
    ) -> list[RawResult]:
        params = {
            "search_query": self.build_query(query, from_year),
            "start": "0",
            "max_results": str(limit),
            "sortBy": "relevance",
            "sortOrder": "descending",
        }
        logger.info(f"arXiv search: {params['search_query']}")
        xml_text = await self._make_request(ARXIV_API_URL, params=params, timeout=timeout, expect_json=False)
        return self._parse_atom_response(xml_text)

    def _parse_atom_response(self, xml_text: str) -> list[RawResult]:
        """Parse Atom XML response from arXiv."""
        try:
            root = ET.fromstring(xml_text)
        except (ET.ParseError, DefusedXmlException) as e:
            raise ParseError(str(e), source="arxiv") from e

        results = []
        for entry in root.findall("atom:entry", NAMESPACES):
            result = self._parse_entry(entry)
            if result is not None:
                results.append(result)
        return results

    @staticmethod
    def _text(entry: Any, path: str) -> str | None:
        elem = entry.find(path, NAMESPACES)
        if elem is None or not elem.text:
            return None
        return " ".join(elem.text.split())

    def _parse_entry(self, entry: Any) -> RawResult | None:
        # Entry id is the abstract page, e.g. http://arxiv.org/abs/1706.03762v7
        entry_url = self._text(entry, "atom:id")

        authors = []
        for author in entry.findall("atom:author", NAMESPACES):
            authors.append(
                make_author(
                    self._text(author, "atom:name"),
                    self._text(author, "arxiv:affiliation"),
                )
            )

        pdf_url = None
        for link in entry.findall("atom:link", NAMESPACES):
            if link.get("type") == "application/pdf" or link.get("title") == "pdf":
                pdf_url = link.get("href")
                break

        return build_result(
            PaperSource.ARXIV,
            title=self._text(entry, "atom:title"),
            authors=authors,
            year=parse_year(self._text(entry, "atom:published")),
            abstract=self._text(entry, "atom:summary"),
            venue=self._text(entry, "arxiv:journal_ref") or "arXiv",
            doi=self._text(entry, "arxiv:doi"),
            url=entry_url,
            pdf_url=pdf_url,
        )
