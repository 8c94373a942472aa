"""
Paper Discovery - multi-source academic paper search, ranking and deduplication.

Fans a free-text research query out to several bibliographic databases,
merges what comes back into one ranked, deduplicated list of canonical
papers, and tolerates partial failure of individual sources.

Usage:
    from paper_discovery import PaperSearchService, SearchRequest

    service = PaperSearchService.from_settings()
    response = await service.search("graph neural networks", SearchRequest(max_results=10))
"""

from paper_discovery.application.search.service import PaperSearchService
from paper_discovery.domain import CanonicalPaper, SearchRequest, SearchResponse

__version__ = "0.1.0"

__all__ = [
    "CanonicalPaper",
    "PaperSearchService",
    "SearchRequest",
    "SearchResponse",
    "__version__",
]
