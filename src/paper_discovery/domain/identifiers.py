"""
Identifier normalization and deterministic canonical ids.

A canonical id is a UUIDv5 under a fixed namespace, so the same logical
paper maps to the same id across runs, processes and sources.
"""

from __future__ import annotations

import re
import uuid

PAPER_NAMESPACE = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")

_DOI_PREFIX = re.compile(r"^(?:https?://(?:dx\.)?doi\.org/|doi:\s*)", re.IGNORECASE)
_YEAR_TOKEN = re.compile(r"\b(1[5-9]\d{2}|2\d{3})\b")
_ARXIV_URL = re.compile(r"arxiv\.org/(?:abs|pdf)/", re.IGNORECASE)


def normalize_doi(doi: str | None) -> str | None:
    """
    Normalize a DOI for comparison and hashing.

    >>> normalize_doi("https://doi.org/10.1234/TEST")
    '10.1234/test'
    """
    if doi is None:
        return None
    cleaned = doi.strip()
    # Prefixes may be stacked, e.g. "doi:https://doi.org/..."
    while True:
        stripped = _DOI_PREFIX.sub("", cleaned, count=1).strip()
        if stripped == cleaned:
            break
        cleaned = stripped
    cleaned = cleaned.lower()
    return cleaned or None


def normalize_title(title: str | None) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    if not title:
        return ""
    normalized = title.lower()
    normalized = re.sub(r"[^\w\s]", "", normalized)
    normalized = re.sub(r"\s+", " ", normalized)
    return normalized.strip()


def parse_year(value: object) -> int | None:
    """Read a year from an int or pull a ``YYYY`` token out of a date string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    match = _YEAR_TOKEN.search(str(value))
    return int(match.group(1)) if match else None


def is_arxiv_url(url: str | None) -> bool:
    return bool(url) and bool(_ARXIV_URL.search(url))


def compute_canonical_id(
    doi: str | None,
    title: str | None,
    first_author: str | None = None,
    year: int | None = None,
) -> str:
    """
    Deterministic id for a paper.

    Uses the normalized DOI when one is present, otherwise
    ``title|first_author|year``. Empty parts keep their position so a
    missing author and a missing year never produce the same key.
    """
    normalized_doi = normalize_doi(doi)
    if normalized_doi:
        key = normalized_doi
    else:
        parts = [
            normalize_title(title),
            (first_author or "").strip().lower(),
            str(year) if year else "",
        ]
        key = "|".join(parts)
    return str(uuid.uuid5(PAPER_NAMESPACE, key))
