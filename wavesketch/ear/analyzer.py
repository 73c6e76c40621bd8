"""WAVESKETCH Waveform Analyzer — Descriptive metrics for a drawn curve.

Informational only; nothing here touches the audio path.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Literal, Sequence

import numpy as np

from wavesketch.hands.curve import CurvePoint

Complexity = Literal["Low", "Medium", "High"]

HIGH_THRESHOLD = 70.0
MEDIUM_THRESHOLD = 30.0


@dataclass(frozen=True)
class AnalysisResult:
    """harmonic_richness 0-100, complexity class, rough fundamental.

    fundamental_freq is zero crossings / 2 counted along the drawn cycle,
    so it is a crossings-per-cycle figure, not a frequency in Hz.
    """

    harmonic_richness: float = 0.0
    complexity: Complexity = "Low"
    fundamental_freq: float = 0.0

    def to_dict(self) -> dict[str, float | str]:
        return asdict(self)


def classify(richness: float) -> Complexity:
    if richness > HIGH_THRESHOLD:
        return "High"
    if richness > MEDIUM_THRESHOLD:
        return "Medium"
    return "Low"


def count_zero_crossings(ys: Sequence[float]) -> int:
    """Sign changes of (y - 50) between consecutive points."""
    centred = np.asarray(ys, dtype=np.float64) - 50.0
    if len(centred) < 2:
        return 0
    return int(np.sum(centred[1:] * centred[:-1] < 0))


def analyze(curve: Sequence[CurvePoint]) -> AnalysisResult:
    """Variance + zero-crossing heuristic; empty curves score zero/Low."""
    if not curve:
        return AnalysisResult()

    ys = np.array([p.y for p in curve], dtype=np.float64)
    variance = float(np.var(ys))
    crossings = count_zero_crossings(ys)

    richness = min(100.0, variance / 100.0 * 50.0 + crossings / len(ys) * 50.0)
    return AnalysisResult(
        harmonic_richness=float(round(richness)),
        complexity=classify(richness),
        fundamental_freq=crossings / 2,
    )
