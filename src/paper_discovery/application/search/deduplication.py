"""
Deduplication Engine - collapse records that describe the same work.

Clustering uses Union-Find over two keys: normalized DOI and normalized
title. Two records join a cluster if either key matches, transitively.

Representative selection within a cluster:
1. Preprint/journal: if the cluster has an arXiv member and a DOI-bearing
   member from another source, the best such journal member wins and the
   arXiv URL becomes ``preprint_id`` (unless ``link_preprints`` is False).
2. Otherwise, DOI-bearing members are preferred over DOI-less ones.
3. Among the remaining candidates, the highest citation count wins;
   ties go to the earliest record in the input.

Clusters are emitted in order of their earliest member, so a ranked input
stays ranked.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from paper_discovery.domain.entities import CanonicalPaper, PaperSource, RawResult
from paper_discovery.domain.identifiers import is_arxiv_url, normalize_doi, normalize_title

logger = logging.getLogger(__name__)


class UnionFind:
    """
    Union-Find (Disjoint Set Union) data structure for efficient deduplication.

    Time Complexity:
    - find: O(α(n)) ≈ O(1) amortized (inverse Ackermann)
    - union: O(α(n)) ≈ O(1) amortized
    """

    def __init__(self, n: int):
        self.parent = list(range(n))
        self.rank = [0] * n

    def find(self, x: int) -> int:
        """Find root with path compression."""
        root = x
        while self.parent[root] != root:
            root = self.parent[root]
        while self.parent[x] != root:
            self.parent[x], x = root, self.parent[x]
        return root

    def union(self, x: int, y: int) -> bool:
        """Union by rank. Returns True if x and y were in different sets."""
        px, py = self.find(x), self.find(y)
        if px == py:
            return False
        if self.rank[px] < self.rank[py]:
            px, py = py, px
        self.parent[py] = px
        if self.rank[px] == self.rank[py]:
            self.rank[px] += 1
        return True

    def groups(self) -> list[list[int]]:
        """Groups of member indices, ordered by their smallest member."""
        by_root: dict[int, list[int]] = {}
        for i in range(len(self.parent)):
            by_root.setdefault(self.find(i), []).append(i)
        return sorted(by_root.values(), key=lambda members: members[0])


@dataclass
class DeduplicationStats:
    """Statistics from one deduplication pass."""

    total_input: int = 0
    unique_papers: int = 0
    duplicates_removed: int = 0
    preprints_linked: int = 0
    by_source: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_input": self.total_input,
            "unique_papers": self.unique_papers,
            "duplicates_removed": self.duplicates_removed,
            "preprints_linked": self.preprints_linked,
            "by_source": self.by_source,
        }


def is_preprint(result: RawResult) -> bool:
    return result.source is PaperSource.ARXIV or is_arxiv_url(result.url)


def _has_doi(result: RawResult) -> bool:
    return normalize_doi(result.doi) is not None


def cluster_indices(results: Sequence[RawResult]) -> list[list[int]]:
    """Union records sharing a normalized DOI or a normalized title."""
    uf = UnionFind(len(results))
    first_by_doi: dict[str, int] = {}
    first_by_title: dict[str, int] = {}

    for i, result in enumerate(results):
        doi = normalize_doi(result.doi)
        if doi:
            if doi in first_by_doi:
                uf.union(first_by_doi[doi], i)
            else:
                first_by_doi[doi] = i

        title = normalize_title(result.title)
        if title:
            if title in first_by_title:
                uf.union(first_by_title[title], i)
            else:
                first_by_title[title] = i

    return uf.groups()


def _best_by_citations(members: list[RawResult]) -> RawResult:
    # max() keeps the first of equal elements, i.e. the earliest record
    return max(members, key=lambda r: r.citations)


def select_representative(members: list[RawResult]) -> tuple[RawResult, RawResult | None]:
    """
    Pick the winning record of a cluster.

    Returns:
        (representative, linked preprint or None)
    """
    preprints = [m for m in members if is_preprint(m)]
    journals = [m for m in members if not is_preprint(m) and _has_doi(m)]

    if preprints and journals:
        return _best_by_citations(journals), preprints[0]

    with_doi = [m for m in members if _has_doi(m)]
    candidates = with_doi or members
    return _best_by_citations(candidates), None


def deduplicate_papers(
    results: Sequence[RawResult],
    link_preprints: bool = True,
    stats: DeduplicationStats | None = None,
) -> list[CanonicalPaper]:
    """
    Collapse duplicates into canonical papers.

    Args:
        results: Raw or scored results, typically already ranked
        link_preprints: Record the arXiv URL of a merged preprint as ``preprint_id``
        stats: Optional stats object filled in place

    Returns:
        One CanonicalPaper per cluster, never more than ``len(results)``
    """
    stats = stats if stats is not None else DeduplicationStats()
    stats.total_input = len(results)
    for result in results:
        stats.by_source[result.source.value] = stats.by_source.get(result.source.value, 0) + 1

    papers: list[CanonicalPaper] = []
    for group in cluster_indices(results):
        members = [results[i] for i in group]
        representative, preprint = select_representative(members)

        preprint_id = None
        if preprint is not None and link_preprints:
            preprint_id = preprint.url or preprint.canonical_id
            stats.preprints_linked += 1

        papers.append(
            CanonicalPaper.from_result(
                representative,
                siblings=[m.canonical_id for m in members if m is not representative],
                preprint_id=preprint_id,
                combined_score=max(getattr(m, "combined_score", 0.0) for m in members),
            )
        )

    stats.unique_papers = len(papers)
    stats.duplicates_removed = stats.total_input - stats.unique_papers
    if stats.duplicates_removed:
        logger.debug(f"Dedup: {stats.total_input} -> {stats.unique_papers} ({stats.preprints_linked} preprints linked)")
    return papers


def simple_deduplicate_papers(results: Sequence[RawResult]) -> list[CanonicalPaper]:
    """
    Order-preserving dedup: same clustering, first-seen record wins.

    Never reorders by citations and never sets ``preprint_id``.
    """
    papers: list[CanonicalPaper] = []
    for group in cluster_indices(results):
        members = [results[i] for i in group]
        first = members[0]
        papers.append(
            CanonicalPaper.from_result(
                first,
                siblings=[m.canonical_id for m in members[1:]],
            )
        )
    return papers
