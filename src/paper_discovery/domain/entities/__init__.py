"""Domain entities."""

from .paper import UNKNOWN_AUTHOR, Author, CanonicalPaper, PaperSource, RawResult, ScoredResult
from .search import (
    DEFAULT_SOURCES,
    SearchMetadata,
    SearchRequest,
    SearchResponse,
    SearchStatus,
    SourceFailure,
)

__all__ = [
    "DEFAULT_SOURCES",
    "UNKNOWN_AUTHOR",
    "Author",
    "CanonicalPaper",
    "PaperSource",
    "RawResult",
    "ScoredResult",
    "SearchMetadata",
    "SearchRequest",
    "SearchResponse",
    "SearchStatus",
    "SourceFailure",
]
