"""
Internal content store as a search source.

The store itself (persistence, full-text index) lives elsewhere; this
adapter only needs something with an async ``search(query, limit)`` that
returns row dicts.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

from paper_discovery.domain.entities import PaperSource, RawResult
from paper_discovery.domain.identifiers import parse_year
from paper_discovery.infrastructure.sources.base_client import (
    BaseSourceAdapter,
    as_list,
    build_result,
    make_author,
    to_int,
)
from paper_discovery.shared.exceptions import ParseError

logger = logging.getLogger(__name__)


@runtime_checkable
class PaperStore(Protocol):
    """Row store queried by the internal source."""

    async def search(self, query: str, limit: int) -> list[dict[str, Any]]: ...


class InternalSearchAdapter(BaseSourceAdapter):
    """Treats the internal paper store as one more source in the fan-out."""

    source = PaperSource.INTERNAL
    _service_name = "Internal"

    def __init__(self, store: PaperStore, **kwargs: Any) -> None:
        self._store = store
        super().__init__(**kwargs)

    async def _fetch(
        self,
        query: str,
        *,
        limit: int,
        from_year: int | None,
        timeout: float,
    ) -> list[RawResult]:
        rows = await self._store.search(query, limit)
        if not isinstance(rows, list):
            raise ParseError(f"store returned {type(rows).__name__}", source="internal")

        results = self._normalize_records(rows, self._normalize_row)
        if from_year:
            results = [r for r in results if not r.year or r.year >= from_year]
        return results

    @staticmethod
    def _normalize_row(row: dict[str, Any]) -> RawResult | None:
        authors = []
        for author in as_list(row.get("authors")):
            if isinstance(author, dict):
                authors.append(make_author(author.get("name"), author.get("affiliation")))
            else:
                authors.append(make_author(author))

        return build_result(
            PaperSource.INTERNAL,
            title=row.get("title"),
            authors=authors,
            year=parse_year(row.get("year") or row.get("publication_date")),
            abstract=row.get("abstract"),
            venue=row.get("venue"),
            doi=row.get("doi"),
            url=row.get("url"),
            pdf_url=row.get("pdf_url"),
            citation_count=to_int(row.get("citation_count")),
        )
