"""EAR — Analysis layer.

- Analyzer: harmonic richness, complexity class, rough fundamental
"""

from wavesketch.ear.analyzer import (
    AnalysisResult,
    analyze,
    classify,
    count_zero_crossings,
)

__all__ = [
    "AnalysisResult",
    "analyze",
    "classify",
    "count_zero_crossings",
]
