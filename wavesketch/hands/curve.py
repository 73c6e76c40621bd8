"""WAVESKETCH Curve Preprocessor — Smoothing and normalisation of drawn curves.

A curve is an ordered list of CurvePoint in a 0-100 × 0-100 coordinate
space: x is the position inside one waveform cycle, y the amplitude
(50 = zero crossing). Both operations return new lists and never touch
the caller's points.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, Sequence


# ── Data Types ───────────────────────────────────────────


@dataclass(frozen=True)
class CurvePoint:
    """One drawn point: cycle position x and amplitude y, both 0-100."""

    x: float
    y: float

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_any(cls, value: Any) -> CurvePoint:
        """Accept a CurvePoint, an {x, y} mapping or an (x, y) pair."""
        if isinstance(value, CurvePoint):
            return value
        if isinstance(value, dict):
            return cls(x=float(value["x"]), y=float(value["y"]))
        x, y = value
        return cls(x=float(x), y=float(y))


Curve = list[CurvePoint]


def as_curve(points: Iterable[Any]) -> Curve:
    """Snapshot any iterable of point-likes into a fresh Curve."""
    return [CurvePoint.from_any(p) for p in points]


# ── Preprocessing ────────────────────────────────────────


def smooth(curve: Sequence[CurvePoint]) -> Curve:
    """3-tap moving average on interior amplitudes; endpoints kept.

    Curves shorter than three points come back unchanged.
    """
    points = list(curve)
    if len(points) < 3:
        return points

    smoothed = [points[0]]
    for prev, curr, nxt in zip(points, points[1:], points[2:]):
        smoothed.append(CurvePoint(x=curr.x, y=(prev.y + curr.y + nxt.y) / 3.0))
    smoothed.append(points[-1])
    return smoothed


def normalize(curve: Sequence[CurvePoint]) -> Curve:
    """Stretch y linearly so the lowest point sits at 0 and the highest at 100.

    A flat (or empty) curve has no range to stretch and is returned as is.
    """
    points = list(curve)
    if not points:
        return points

    ys = [p.y for p in points]
    lo, hi = min(ys), max(ys)
    span = hi - lo
    if span == 0:
        return points

    return [CurvePoint(x=p.x, y=(p.y - lo) / span * 100.0) for p in points]


def prepare(curve: Sequence[CurvePoint]) -> Curve:
    """Finish a drawing gesture: smooth, then normalize."""
    return normalize(smooth(curve))


# ── Persistence ──────────────────────────────────────────


def curve_to_json(curve: Sequence[CurvePoint]) -> str:
    """Serialize a curve as an ordered JSON list of {x, y} objects."""
    return json.dumps([p.to_dict() for p in curve])


def curve_from_json(text: str) -> Curve:
    """Inverse of curve_to_json."""
    return as_curve(json.loads(text))
