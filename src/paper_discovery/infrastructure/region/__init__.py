"""Region detection collaborator."""

from .detector import (
    Confidence,
    RegionDetector,
    RegionInputs,
    RegionResult,
    Signal,
    normalize_country,
)

__all__ = [
    "Confidence",
    "RegionDetector",
    "RegionInputs",
    "RegionResult",
    "Signal",
    "normalize_country",
]
