"""WAVESKETCH Synthesis Engine — Drawn curve → periodic tone table.

Pipeline for every new curve:
  1. Resample the points into one cycle of N samples (linear interpolation)
  2. Direct DFT against cos/sin at harmonics 1..H (DC forced to zero)
  3. Perceptual boost on the low harmonics
  4. Additive resynthesis of one band-limited cycle, peak-normalised

The resulting ToneTable is immutable; voices keep the table they were
started with, so rebuilding never disturbs notes already sounding.
Before the first rebuild voices use a sawtooth table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
import structlog
from numpy.typing import NDArray

from wavesketch.config import settings
from wavesketch.hands.curve import CurvePoint

logger = structlog.get_logger()

# Harmonics below this index get the stronger boost
LOW_HARMONIC_LIMIT = 8
BOOST_BASE = 1.5


# ── Data Types ───────────────────────────────────────────


@dataclass(frozen=True)
class ToneTable:
    """One playable waveform cycle.

    samples: Resampled curve, N values in [-1, 1] (time domain capture).
    real/imag: Fourier coefficients, index 0 = DC (always 0), 1..H harmonics.
    wave: Oscillator cycle resynthesized from real/imag, peak 1.
    name: Human label ("custom", "sawtooth", ...).
    """

    samples: NDArray[np.float64]
    real: NDArray[np.float64]
    imag: NDArray[np.float64]
    wave: NDArray[np.float64]
    name: str = "custom"

    def __post_init__(self) -> None:
        for arr in (self.samples, self.real, self.imag, self.wave):
            arr.setflags(write=False)

    @property
    def n_harmonics(self) -> int:
        return len(self.real) - 1

    @property
    def magnitudes(self) -> NDArray[np.float64]:
        """|c_h| for h = 0..H."""
        return np.hypot(self.real, self.imag)


# ── Resample ─────────────────────────────────────────────


def resample_curve(
    curve: Sequence[CurvePoint],
    size: int | None = None,
) -> NDArray[np.float64]:
    """Map curve points onto a fixed-length cycle, amplitudes in [-1, 1].

    Sample i sits at x = i / size * 100. Each sample interpolates between
    the first pair of (x-sorted) points that brackets it; samples outside
    the drawn range take the nearest endpoint. An empty curve yields
    silence.
    """
    n = size or settings.table_size
    out = np.zeros(n, dtype=np.float64)
    if not curve:
        return out

    points = sorted(curve, key=lambda p: p.x)
    first, last = points[0], points[-1]

    for i in range(n):
        x = i / n * 100.0
        lo, hi = first, last
        for a, b in zip(points, points[1:]):
            if a.x <= x <= b.x:
                lo, hi = a, b
                break
        else:
            if x < first.x:
                hi = first
            elif x > last.x:
                lo = last

        if lo.x == hi.x or lo is hi:
            y = lo.y if x >= lo.x else hi.y
        else:
            t = (x - lo.x) / (hi.x - lo.x)
            y = lo.y + t * (hi.y - lo.y)
        out[i] = (y - 50.0) / 50.0

    return out


# ── Harmonic Analysis ────────────────────────────────────


def harmonic_boost(h: int) -> float:
    """Fixed perceptual gain per harmonic: 1.5 below index 8, √1.5 above."""
    return BOOST_BASE ** (1.0 if h < LOW_HARMONIC_LIMIT else 0.5)


def extract_harmonics(
    samples: NDArray[np.float64],
    n_harmonics: int | None = None,
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Direct DFT of one cycle at harmonics 1..H.

    Returns (real, imag), each of length H + 1 with the DC slot zeroed.
    The sum is O(N·H), fine for a table rebuilt only on curve edits.
    """
    h_count = n_harmonics or settings.n_harmonics
    n = len(samples)
    real = np.zeros(h_count + 1, dtype=np.float64)
    imag = np.zeros(h_count + 1, dtype=np.float64)
    if n == 0:
        return real, imag

    idx = np.arange(n, dtype=np.float64)
    for h in range(1, h_count + 1):
        angle = 2.0 * np.pi * h * idx / n
        boost = harmonic_boost(h)
        real[h] = float(np.dot(samples, np.cos(angle))) / n * boost
        imag[h] = float(np.dot(samples, np.sin(angle))) / n * boost

    return real, imag


def synthesize_cycle(
    real: NDArray[np.float64],
    imag: NDArray[np.float64],
    size: int | None = None,
) -> NDArray[np.float64]:
    """Additive resynthesis: Σ real[h]·cos(2πht) + imag[h]·sin(2πht).

    Normalised to a peak of 1; an all-zero spectrum gives a silent cycle.
    """
    n = size or settings.table_size
    phase = np.arange(n, dtype=np.float64) / n
    wave = np.zeros(n, dtype=np.float64)
    for h in range(1, len(real)):
        if real[h] == 0.0 and imag[h] == 0.0:
            continue
        wave += real[h] * np.cos(2 * np.pi * h * phase)
        wave += imag[h] * np.sin(2 * np.pi * h * phase)

    peak = np.max(np.abs(wave)) if n else 0.0
    if peak > 0:
        wave /= peak
    return wave


# ── Tone Tables ──────────────────────────────────────────


def rebuild_tone(
    curve: Sequence[CurvePoint],
    table_size: int | None = None,
    n_harmonics: int | None = None,
) -> ToneTable:
    """Build a fresh ToneTable from a (normalised) curve snapshot."""
    samples = resample_curve(list(curve), table_size)
    real, imag = extract_harmonics(samples, n_harmonics)
    wave = synthesize_cycle(real, imag, len(samples))

    logger.info(
        "Tone table rebuilt",
        points=len(curve),
        table_size=len(samples),
        harmonics=len(real) - 1,
    )
    return ToneTable(samples=samples, real=real, imag=imag, wave=wave)


def sawtooth_tone(
    table_size: int | None = None,
    n_harmonics: int | None = None,
) -> ToneTable:
    """Band-limited sawtooth: imag[h] = 2/(hπ)·(-1)^(h+1), no cosine terms."""
    n = table_size or settings.table_size
    h_count = n_harmonics or settings.n_harmonics

    real = np.zeros(h_count + 1, dtype=np.float64)
    imag = np.zeros(h_count + 1, dtype=np.float64)
    for h in range(1, h_count + 1):
        imag[h] = 2.0 / (h * np.pi) * (-1.0) ** (h + 1)

    wave = synthesize_cycle(real, imag, n)
    return ToneTable(samples=wave.copy(), real=real, imag=imag, wave=wave, name="sawtooth")


def sine_cycle(size: int | None = None) -> NDArray[np.float64]:
    """One period of a sine, the shape shown before anything is drawn."""
    n = size or settings.table_size
    return np.sin(2 * np.pi * np.arange(n, dtype=np.float64) / n)


# ── Oscillator ───────────────────────────────────────────


class WavetableOscillator:
    """Phase-accumulating reader over a ToneTable cycle.

    Phase is kept in cycles (0-1) and survives across blocks so consecutive
    renders join without discontinuity.
    """

    def __init__(self, table: ToneTable, freq_hz: float, sr: int | None = None) -> None:
        self.table = table
        self.freq_hz = max(0.0, float(freq_hz))
        self.sr = sr or settings.sample_rate
        self.phase = 0.0

    def render(self, n: int) -> NDArray[np.float64]:
        """Next n samples, linearly interpolated from the table."""
        wave = self.table.wave
        size = len(wave)
        step = self.freq_hz / self.sr

        phase = (self.phase + step * np.arange(n, dtype=np.float64)) % 1.0
        self.phase = float((self.phase + step * n) % 1.0)

        pos = phase * size
        i0 = pos.astype(np.int64) % size
        i1 = (i0 + 1) % size
        frac = pos - np.floor(pos)
        return wave[i0] * (1.0 - frac) + wave[i1] * frac
