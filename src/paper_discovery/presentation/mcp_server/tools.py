"""
Search MCP Tools

Provides:
- search_papers: multi-source search with ranking, dedup and regional boost
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from paper_discovery.domain.entities import DEFAULT_SOURCES, SearchRequest
from paper_discovery.shared.exceptions import CriticalConfigError

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from paper_discovery.application.search import PaperSearchService

logger = logging.getLogger(__name__)


def parse_sources(sources: str | list[str] | None) -> list[str]:
    """Accept "openalex,arxiv", a list, or None (all default sources)."""
    if not sources:
        return [s.value for s in DEFAULT_SOURCES]
    if isinstance(sources, str):
        sources = sources.split(",")
    return [s.strip().lower() for s in sources if s and s.strip()]


def parse_ids(ids: str | list[str] | None) -> list[str]:
    """Comma-separated string or list of canonical ids / DOIs; case is kept."""
    if not ids:
        return []
    if isinstance(ids, str):
        ids = ids.split(",")
    return [i.strip() for i in ids if i and i.strip()]


def error_response(error: str, tool_name: str, suggestion: str | None = None) -> str:
    payload: dict[str, Any] = {"success": False, "tool": tool_name, "error": error}
    if suggestion:
        payload["suggestion"] = suggestion
    return json.dumps(payload, indent=2, ensure_ascii=False)


def register_search_tools(mcp: FastMCP, service: PaperSearchService):
    """Register search tools (1 tool)."""

    @mcp.tool()
    async def search_papers(
        query: str,
        max_results: int = 20,
        sources: str | None = None,
        fast_mode: bool = False,
        from_year: int | None = 2000,
        local_region: str | None = None,
        link_preprints: bool = True,
        include_internal: bool = False,
        exclude_ids: str | list[str] | None = None,
        broader_search: bool = False,
    ) -> str:
        """
        Search academic papers across OpenAlex, Crossref, Semantic Scholar, arXiv and CORE.

        Results are ranked by a hybrid score (semantic, keyword, citations,
        recency) and deduplicated; a preprint merged into its journal version
        is reported as ``preprint_id``.

        Args:
            query: Free-text research question or keywords
            max_results: Maximum number of papers to return (default 20)
            sources: Comma-separated source tags, e.g. "openalex,arxiv" (default: all)
            fast_mode: Smaller per-source limits and shorter timeouts
            from_year: Only papers published in or after this year (None = any)
            local_region: Country to prioritize, e.g. "Brazil"
            link_preprints: Report merged arXiv preprints as preprint_id
            include_internal: Also search the local paper store, if configured
            exclude_ids: Canonical ids or DOIs of papers to leave out (comma-separated or list)
            broader_search: When results are thin, retry with pairs of query terms

        Returns:
            JSON with status, papers and metadata (sources queried, errors, timings)
        """
        logger.info(f"search_papers: query='{query}', max_results={max_results}, sources={sources}")
        try:
            request = SearchRequest(
                max_results=max_results,
                sources=parse_sources(sources),
                fast_mode=fast_mode,
                from_year=from_year,
                local_region=local_region,
                link_preprints=link_preprints,
                use_internal_search=include_internal,
                exclude_ids=parse_ids(exclude_ids),
                broader_search=broader_search,
            )
            response = await service.search(query, request)
            return json.dumps(response.to_dict(), indent=2, ensure_ascii=False)
        except CriticalConfigError as e:
            return error_response(str(e), "search_papers", suggestion=e.context.suggestion)
        except Exception as e:
            logger.exception(f"search_papers failed: {e}")
            return error_response(str(e), "search_papers")

    return search_papers


__all__ = ["error_response", "parse_ids", "parse_sources", "register_search_tools"]
