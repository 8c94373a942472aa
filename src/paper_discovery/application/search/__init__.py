"""Search use cases: fan-out, ranking, deduplication and regional boost."""

from .deduplication import (
    DeduplicationStats,
    UnionFind,
    deduplicate_papers,
    simple_deduplicate_papers,
)
from .orchestrator import OrchestrationResult, ParallelSearchOrchestrator, broader_queries
from .ranking import HybridRanker, RankingConfig
from .regional import BoostResult, apply_regional_boost
from .service import PaperSearchService, exclude_known, validate_request

__all__ = [
    "BoostResult",
    "DeduplicationStats",
    "HybridRanker",
    "OrchestrationResult",
    "PaperSearchService",
    "ParallelSearchOrchestrator",
    "RankingConfig",
    "UnionFind",
    "apply_regional_boost",
    "broader_queries",
    "deduplicate_papers",
    "exclude_known",
    "simple_deduplicate_papers",
    "validate_request",
]
