"""
Regional Booster - stable partition by detected region.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from paper_discovery.domain.entities import CanonicalPaper

logger = logging.getLogger(__name__)


@dataclass
class BoostResult:
    papers: list[CanonicalPaper] = field(default_factory=list)
    boosted: bool = False
    local_count: int = 0


def _region_key(region: str | None) -> str:
    return " ".join((region or "").split()).casefold()


def apply_regional_boost(papers: list[CanonicalPaper], local_region: str | None) -> BoostResult:
    """
    Move papers whose region matches ``local_region`` to the front.

    Both halves keep their relative order. With no region requested, or
    no paper matching, the list comes back unchanged and ``boosted`` is False.
    """
    target = _region_key(local_region)
    if not target:
        return BoostResult(papers=list(papers))

    local = [p for p in papers if _region_key(p.region) == target]
    if not local:
        return BoostResult(papers=list(papers))

    others = [p for p in papers if _region_key(p.region) != target]
    logger.info(f"Regional boost: {len(local)} papers from {local_region}")
    return BoostResult(papers=local + others, boosted=True, local_count=len(local))
