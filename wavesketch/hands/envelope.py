"""WAVESKETCH Envelopes — ADSR parameters and per-voice gain automation.

A voice's gain is a piecewise-linear function of absolute engine time,
stored as breakpoints. note-on writes attack/decay ramps, note-off cuts
the timeline at "now" and appends the release ramp. Evaluating the
timeline at any time (or a whole block of times) is exact, so the
envelope is sample accurate and testable with an injected clock.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray


# ── Data Types ───────────────────────────────────────────


@dataclass(frozen=True)
class EnvelopeParams:
    """ADSR settings in UI units (milliseconds and percent)."""

    attack_ms: float = 100.0
    decay_ms: float = 300.0
    sustain_pct: float = 70.0
    release_ms: float = 500.0

    def clamped(self) -> EnvelopeParams:
        """Copy with every field forced into its valid range."""
        return EnvelopeParams(
            attack_ms=max(0.0, float(self.attack_ms)),
            decay_ms=max(0.0, float(self.decay_ms)),
            sustain_pct=min(100.0, max(0.0, float(self.sustain_pct))),
            release_ms=max(0.0, float(self.release_ms)),
        )

    @property
    def attack_s(self) -> float:
        return self.attack_ms / 1000.0

    @property
    def decay_s(self) -> float:
        return self.decay_ms / 1000.0

    @property
    def sustain(self) -> float:
        return self.sustain_pct / 100.0

    @property
    def release_s(self) -> float:
        return self.release_ms / 1000.0


class VoiceState(str, Enum):
    """Lifecycle of one note."""

    IDLE = "idle"
    ATTACKING = "attacking"
    DECAYING = "decaying"
    SUSTAINING = "sustaining"
    RELEASING = "releasing"
    FINISHED = "finished"


# ── Automation Timeline ──────────────────────────────────


class GainTimeline:
    """Piecewise-linear gain automation over absolute time (seconds).

    Before the first breakpoint the gain holds the first value; after the
    last one it holds the last value. Two breakpoints at the same instant
    form a jump; the later one wins from that instant on.
    """

    def __init__(self, initial: float = 0.0) -> None:
        self._times: list[float] = []
        self._values: list[float] = []
        self._initial = initial

    def __len__(self) -> int:
        return len(self._times)

    @property
    def end_time(self) -> float:
        return self._times[-1] if self._times else 0.0

    def set_value_at(self, value: float, t: float) -> None:
        """Jump to value at time t."""
        self._append(t, value)

    def linear_ramp_to(self, value: float, t_end: float) -> None:
        """Ramp linearly from the previous breakpoint to value at t_end."""
        self._append(t_end, value)

    def cancel_from(self, t: float) -> None:
        """Drop every breakpoint strictly after t."""
        keep = bisect.bisect_right(self._times, t)
        del self._times[keep:]
        del self._values[keep:]

    def _append(self, t: float, value: float) -> None:
        if self._times and t < self._times[-1]:
            t = self._times[-1]
        self._times.append(float(t))
        self._values.append(float(value))

    def value_at(self, t: float) -> float:
        """Gain at a single instant."""
        if not self._times:
            return self._initial
        i = bisect.bisect_right(self._times, t)
        if i == 0:
            return self._values[0]
        if i == len(self._times):
            return self._values[-1]
        t0, t1 = self._times[i - 1], self._times[i]
        v0, v1 = self._values[i - 1], self._values[i]
        if t1 <= t0:
            return v1
        return v0 + (v1 - v0) * (t - t0) / (t1 - t0)

    def values(self, t: NDArray[np.float64]) -> NDArray[np.float64]:
        """Vectorised value_at for a block of sample times."""
        if not self._times:
            return np.full(len(t), self._initial, dtype=np.float64)

        times = np.asarray(self._times)
        vals = np.asarray(self._values)
        i = np.searchsorted(times, t, side="right")
        hi = np.clip(i, 1, len(times) - 1) if len(times) > 1 else np.zeros_like(i)
        lo = np.maximum(hi - 1, 0)

        t0, t1 = times[lo], times[hi]
        v0, v1 = vals[lo], vals[hi]
        span = t1 - t0
        with np.errstate(divide="ignore", invalid="ignore"):
            frac = np.where(span > 0, (t - t0) / np.where(span > 0, span, 1.0), 1.0)
        out = v0 + (v1 - v0) * np.clip(frac, 0.0, 1.0)

        out = np.where(i == 0, vals[0], out)
        out = np.where(i >= len(times), vals[-1], out)
        return out


# ── ADSR Scheduling ──────────────────────────────────────


def schedule_attack(timeline: GainTimeline, env: EnvelopeParams, t0: float) -> None:
    """0 at t0 → 1 after attack → sustain level after decay, then hold."""
    timeline.set_value_at(0.0, t0)
    timeline.linear_ramp_to(1.0, t0 + env.attack_s)
    timeline.linear_ramp_to(env.sustain, t0 + env.attack_s + env.decay_s)


def schedule_release(timeline: GainTimeline, now: float, release_s: float) -> float:
    """Freeze the current gain at now and ramp to silence.

    Returns the time the ramp reaches zero.
    """
    current = timeline.value_at(now)
    timeline.cancel_from(now)
    timeline.set_value_at(current, now)
    end = now + max(0.0, release_s)
    timeline.linear_ramp_to(0.0, end)
    return end
