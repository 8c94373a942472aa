"""
Application Layer - Use Cases and Search Pipeline

Contains:
- search: orchestration, hybrid ranking, deduplication, regional boost
"""

from .search import (
    HybridRanker,
    OrchestrationResult,
    PaperSearchService,
    ParallelSearchOrchestrator,
    RankingConfig,
    apply_regional_boost,
    deduplicate_papers,
    simple_deduplicate_papers,
)

__all__ = [
    "HybridRanker",
    "OrchestrationResult",
    "PaperSearchService",
    "ParallelSearchOrchestrator",
    "RankingConfig",
    "apply_regional_boost",
    "deduplicate_papers",
    "simple_deduplicate_papers",
]
