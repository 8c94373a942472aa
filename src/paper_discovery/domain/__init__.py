"""Domain layer: paper entities and identifier rules."""

from .entities import (
    Author,
    CanonicalPaper,
    PaperSource,
    RawResult,
    ScoredResult,
    SearchMetadata,
    SearchRequest,
    SearchResponse,
    SearchStatus,
    SourceFailure,
)
from .identifiers import compute_canonical_id, normalize_doi, normalize_title, parse_year

__all__ = [
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
    "compute_canonical_id",
    "normalize_doi",
    "normalize_title",
    "parse_year",
]
