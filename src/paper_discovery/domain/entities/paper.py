"""
Paper entities shared by every layer.

Design Principles:
1. Nullable fields - not all sources provide all data
2. Deterministic identity - ``canonical_id`` is derived, never assigned
3. Explicit construction - vendor JSON is mapped field by field in the
   adapters; nothing untyped travels past them

Lifecycle:
    RawResult     one record from one source (per request, ephemeral)
    ScoredResult  RawResult + ranking signals (per request, ephemeral)
    CanonicalPaper  deduplicated unit returned to callers
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any

from paper_discovery.domain.identifiers import compute_canonical_id

UNKNOWN_AUTHOR = "N/A"


class PaperSource(str, Enum):
    """Origin of a raw result."""

    OPENALEX = "openalex"
    CROSSREF = "crossref"
    SEMANTIC_SCHOLAR = "semantic_scholar"
    ARXIV = "arxiv"
    CORE = "core"
    INTERNAL = "internal"

    @classmethod
    def parse(cls, value: str | PaperSource) -> PaperSource | None:
        """Return the matching member, or None for unknown tags."""
        if isinstance(value, PaperSource):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


@dataclass
class Author:
    """Author as reported by a source."""

    name: str = UNKNOWN_AUTHOR
    affiliation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.affiliation:
            result["affiliation"] = self.affiliation
        return result


@dataclass
class RawResult:
    """One paper as reported by one source."""

    title: str
    source: PaperSource
    authors: list[Author] = field(default_factory=list)
    year: int | None = None
    abstract: str | None = None
    venue: str | None = None
    doi: str | None = None
    url: str | None = None
    pdf_url: str | None = None
    citation_count: int | None = None
    canonical_id: str = ""

    def __post_init__(self) -> None:
        self.title = (self.title or "").strip()
        if not self.title:
            msg = "RawResult.title must not be empty"
            raise ValueError(msg)
        if not self.canonical_id:
            self.canonical_id = compute_canonical_id(
                self.doi,
                self.title,
                self.first_author,
                self.year,
            )

    @property
    def first_author(self) -> str | None:
        if self.authors and self.authors[0].name != UNKNOWN_AUTHOR:
            return self.authors[0].name
        return None

    @property
    def citations(self) -> int:
        """Citation count with unknown treated as zero (for ordering)."""
        return self.citation_count or 0

    def base_fields(self) -> dict[str, Any]:
        """Values of the RawResult fields only, for building subclasses."""
        return {f.name: getattr(self, f.name) for f in fields(RawResult)}

    def to_dict(self) -> dict[str, Any]:
        return {
            "canonical_id": self.canonical_id,
            "title": self.title,
            "authors": [a.to_dict() for a in self.authors],
            "year": self.year,
            "abstract": self.abstract,
            "venue": self.venue,
            "doi": self.doi,
            "url": self.url,
            "pdf_url": self.pdf_url,
            "citation_count": self.citation_count,
            "source": self.source.value,
        }


@dataclass
class ScoredResult(RawResult):
    """RawResult with the four ranking signals and their weighted sum."""

    semantic_score: float = 0.0
    keyword_score: float = 0.0
    authority_score: float = 0.0
    recency_score: float = 0.0
    combined_score: float = 0.0

    @classmethod
    def from_raw(cls, raw: RawResult, **scores: float) -> ScoredResult:
        return cls(**raw.base_fields(), **scores)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["scores"] = {
            "semantic": round(self.semantic_score, 4),
            "keyword": round(self.keyword_score, 4),
            "authority": round(self.authority_score, 4),
            "recency": round(self.recency_score, 4),
            "combined": round(self.combined_score, 4),
        }
        return result


@dataclass
class CanonicalPaper(RawResult):
    """
    Deduplicated record representing one real-world work.

    Carries the winning representative's metadata. ``siblings`` holds the
    canonical ids of the merged duplicates and never contains the record's
    own id.
    """

    siblings: list[str] = field(default_factory=list)
    preprint_id: str | None = None
    region: str | None = None
    combined_score: float = 0.0

    def __post_init__(self) -> None:
        super().__post_init__()
        unique: list[str] = []
        for sibling in self.siblings:
            if sibling != self.canonical_id and sibling not in unique:
                unique.append(sibling)
        self.siblings = unique

    @classmethod
    def from_result(
        cls,
        result: RawResult,
        *,
        siblings: list[str] | None = None,
        preprint_id: str | None = None,
        region: str | None = None,
        combined_score: float | None = None,
    ) -> CanonicalPaper:
        if combined_score is None:
            combined_score = getattr(result, "combined_score", 0.0)
        return cls(
            **result.base_fields(),
            siblings=list(siblings or []),
            preprint_id=preprint_id,
            region=region,
            combined_score=combined_score,
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result.update(
            {
                "siblings": list(self.siblings),
                "preprint_id": self.preprint_id,
                "region": self.region,
                "combined_score": round(self.combined_score, 4),
            }
        )
        return result
