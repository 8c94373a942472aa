"""
CrossRef API Integration

API Documentation: https://api.crossref.org/swagger-ui/index.html

Rate Limits:
- Polite pool (with email): ~50 req/sec
- Anonymous: ~1 req/sec (strongly discouraged)

Best Practices:
- Always include email in User-Agent (polite pool)
- Use mailto: parameter for higher rate limits
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from paper_discovery.domain.entities import PaperSource, RawResult
from paper_discovery.infrastructure.sources.base_client import (
    _CONTINUE,
    BaseSourceAdapter,
    as_dict,
    as_list,
    build_result,
    make_author,
    to_int,
)
from paper_discovery.shared.exceptions import ParseError
from paper_discovery.shared.settings import DEFAULT_EMAIL

if TYPE_CHECKING:
    import httpx

logger = logging.getLogger(__name__)

CROSSREF_API_BASE = "https://api.crossref.org"
CROSSREF_WORKS_URL = f"{CROSSREF_API_BASE}/works"

# Date fields from most to least specific to the publication event
_DATE_FIELDS = ("published", "published-print", "published-online", "issued", "created")


class CrossRefAdapter(BaseSourceAdapter):
    """
    CrossRef bibliographic search.

    Note:
        Always provide your email for access to the "polite pool" with
        higher rate limits. Without email, requests are severely throttled.
    """

    source = PaperSource.CROSSREF
    _service_name = "CrossRef"
    _MAX_LIMIT = 100

    def __init__(self, email: str | None = None, **kwargs: Any) -> None:
        self._email = email or DEFAULT_EMAIL
        super().__init__(
            headers={
                "User-Agent": f"paper-discovery/0.1 (mailto:{self._email})",
                "Accept": "application/json",
            },
            **kwargs,
        )

    async def _execute_request(self, url: str, **kwargs: Any) -> Any:
        """Add mailto parameter for polite pool access."""
        params = dict(kwargs.pop("params", None) or {})
        params.setdefault("mailto", self._email)
        return await super()._execute_request(url, params=params, **kwargs)

    def _handle_expected_status(self, response: httpx.Response, url: str) -> Any:
        """404 means no such resource, not a failure."""
        if response.status_code == 404:
            logger.debug(f"CrossRef: not found - {url}")
            return {"items": []}
        return _CONTINUE

    def _parse_response(self, response: httpx.Response, expect_json: bool) -> Any:
        """Extract 'message' key from CrossRef JSON responses."""
        data = response.json()
        if isinstance(data, dict):
            return data.get("message", data)
        return data

    async def _fetch(
        self,
        query: str,
        *,
        limit: int,
        from_year: int | None,
        timeout: float,
    ) -> list[RawResult]:
        params: dict[str, Any] = {
            "query.bibliographic": query,
            "rows": str(limit),
        }
        if from_year:
            params["filter"] = f"from-pub-date:{from_year}"

        message = self._require_dict(
            await self._make_request(CROSSREF_WORKS_URL, params=params, timeout=timeout),
            "crossref",
        )
        items = message.get("items")
        if not isinstance(items, list):
            raise ParseError("missing 'items' list", source="crossref")

        return self._normalize_records(items, self._normalize_item)

    def _normalize_item(self, item: dict[str, Any]) -> RawResult | None:
        authors = []
        for author in as_list(item.get("author")):
            if not isinstance(author, dict):
                authors.append(make_author(author))
                continue
            name = " ".join(str(part) for part in (author.get("given"), author.get("family")) if part)
            affiliations = [
                str(aff["name"]) for aff in as_list(author.get("affiliation")) if isinstance(aff, dict) and aff.get("name")
            ]
            authors.append(make_author(name or author.get("name"), "; ".join(affiliations) or None))

        venue = item.get("container-title") or []
        doi = item.get("DOI")
        return build_result(
            PaperSource.CROSSREF,
            title=item.get("title"),
            authors=authors,
            year=self._extract_year(item),
            abstract=self._clean_abstract(item.get("abstract")),
            venue=venue[0] if isinstance(venue, list) and venue else (venue or None),
            doi=doi,
            url=item.get("URL") or (f"https://doi.org/{doi}" if doi else None),
            citation_count=to_int(item.get("is-referenced-by-count")),
        )

    @staticmethod
    def _extract_year(item: dict[str, Any]) -> int | None:
        for key in _DATE_FIELDS:
            parts = as_list(as_dict(item.get(key)).get("date-parts"))
            if parts and isinstance(parts[0], list) and parts[0]:
                year = to_int(parts[0][0])
                if year:
                    return year
        return None

    @staticmethod
    def _clean_abstract(abstract: Any) -> str | None:
        """CrossRef abstracts are JATS XML fragments."""
        if not isinstance(abstract, str) or not abstract:
            return None
        text = re.sub(r"<[^>]+>", " ", abstract)
        return " ".join(text.split()) or None
