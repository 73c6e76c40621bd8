"""WAVESKETCH Effects Engine — Streaming DSP stages for the shared signal path.

Every stage keeps its own state between blocks, so audio is processed as
a continuous stream: a resonant biquad filter, a fractional delay line,
a waveshaper distortion and a convolution diffuser built on a random
decaying impulse. Parameter changes move targets that the stages glide
towards block by block instead of rebuilding anything.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, get_args

import numpy as np
import structlog
from numpy.typing import NDArray
from scipy.signal import fftconvolve, sosfilt

logger = structlog.get_logger()

FilterKind = Literal["lowpass", "highpass", "bandpass", "notch"]
FILTER_KINDS: tuple[str, ...] = get_args(FilterKind)

MIN_CUTOFF_HZ = 20.0
MAX_CUTOFF_HZ = 20000.0
MAX_RESONANCE = 30.0

# Wet/dry law
DRY_CUT = 0.7
WET_MAX = 0.8

# Per-block smoothing factor for filter cutoff / Q
PARAM_SMOOTHING = 0.85


def clamp_param(name: str, value: float, lo: float, hi: float) -> float:
    v = float(value)
    if math.isnan(v):
        logger.warning("Parameter is NaN, using lower bound", param=name, low=lo)
        return lo
    if v < lo or v > hi:
        clamped = min(hi, max(lo, v))
        logger.warning("Parameter clamped", param=name, value=v, clamped=clamped)
        return clamped
    return v


# ── Parameter Types ──────────────────────────────────────


@dataclass(frozen=True)
class FilterParams:
    """Shared resonant filter settings."""

    cutoff_hz: float = 2000.0
    resonance_q: float = 1.0
    kind: FilterKind = "lowpass"

    def clamped(self) -> FilterParams:
        kind = self.kind
        if kind not in FILTER_KINDS:
            logger.warning("Unknown filter kind, using lowpass", kind=kind)
            kind = "lowpass"
        return FilterParams(
            cutoff_hz=clamp_param("cutoff_hz", self.cutoff_hz, MIN_CUTOFF_HZ, MAX_CUTOFF_HZ),
            resonance_q=clamp_param("resonance_q", self.resonance_q, 0.0, MAX_RESONANCE),
            kind=kind,
        )


@dataclass(frozen=True)
class EffectsParams:
    """Send-effect amounts, each 0-100. chorus_pct is stored but unused."""

    reverb_pct: float = 25.0
    delay_pct: float = 15.0
    distortion_pct: float = 0.0
    chorus_pct: float = 20.0

    def clamped(self) -> EffectsParams:
        return EffectsParams(
            reverb_pct=clamp_param("reverb_pct", self.reverb_pct, 0.0, 100.0),
            delay_pct=clamp_param("delay_pct", self.delay_pct, 0.0, 100.0),
            distortion_pct=clamp_param("distortion_pct", self.distortion_pct, 0.0, 100.0),
            chorus_pct=clamp_param("chorus_pct", self.chorus_pct, 0.0, 100.0),
        )

    @property
    def total_wet(self) -> float:
        """Largest of reverb/delay/distortion as a 0-1 fraction."""
        return max(self.reverb_pct, self.delay_pct, self.distortion_pct) / 100.0


def wet_dry_levels(params: EffectsParams) -> tuple[float, float]:
    """(dry, wet) gains. Dry never drops below 0.3."""
    wet = params.clamped().total_wet
    return 1.0 - DRY_CUT * wet, WET_MAX * wet


# ── Gain Smoothing ───────────────────────────────────────


class SmoothedGain:
    """Gain that moves to a new target linearly over one block."""

    def __init__(self, value: float) -> None:
        self.current = float(value)
        self.target = float(value)

    def set(self, value: float) -> None:
        self.target = float(value)

    def ramp(self, n: int) -> NDArray[np.float64]:
        if self.current == self.target:
            return np.full(n, self.current, dtype=np.float64)
        steps = np.arange(1, n + 1, dtype=np.float64) / max(n, 1)
        out = self.current + (self.target - self.current) * steps
        self.current = self.target
        return out


# ── Filter ───────────────────────────────────────────────


def biquad_sos(
    kind: str,
    cutoff_hz: float,
    q: float,
    sr: int = 44100,
) -> NDArray[np.float64]:
    """Single second-order section (RBJ cookbook).

    lowpass/highpass read q as resonance in dB; bandpass/notch read it as
    linear Q, floored to keep the section stable.
    """
    cutoff = min(cutoff_hz, sr * 0.49)
    w0 = 2 * np.pi * cutoff / sr
    cos_w0 = np.cos(w0)
    sin_w0 = np.sin(w0)

    if kind in ("lowpass", "highpass"):
        alpha = sin_w0 / (2 * 10 ** (q / 20.0))
    else:
        alpha = sin_w0 / (2 * max(q, 1e-4))

    if kind == "highpass":
        b0 = (1 + cos_w0) / 2
        b1 = -(1 + cos_w0)
        b2 = (1 + cos_w0) / 2
    elif kind == "bandpass":
        b0 = alpha
        b1 = 0.0
        b2 = -alpha
    elif kind == "notch":
        b0 = 1.0
        b1 = -2 * cos_w0
        b2 = 1.0
    else:  # lowpass
        b0 = (1 - cos_w0) / 2
        b1 = 1 - cos_w0
        b2 = (1 - cos_w0) / 2

    a0 = 1 + alpha
    a1 = -2 * cos_w0
    a2 = 1 - alpha
    return np.array([[b0 / a0, b1 / a0, b2 / a0, 1.0, a1 / a0, a2 / a0]])


class BiquadFilter:
    """The one filter every voice runs through.

    Cutoff and Q glide towards their targets once per block; the filter
    memory is kept across blocks and across kind changes.
    """

    def __init__(self, params: FilterParams | None = None, sr: int = 44100) -> None:
        self.sr = sr
        self.params = (params or FilterParams()).clamped()
        self._cutoff = self.params.cutoff_hz
        self._q = self.params.resonance_q
        self._zi = np.zeros((1, 2), dtype=np.float64)

    def set(self, params: FilterParams) -> None:
        self.params = params.clamped()

    def process(self, block: NDArray[np.float64]) -> NDArray[np.float64]:
        target = self.params
        self._cutoff = self._cutoff * PARAM_SMOOTHING + target.cutoff_hz * (1 - PARAM_SMOOTHING)
        self._q = self._q * PARAM_SMOOTHING + target.resonance_q * (1 - PARAM_SMOOTHING)

        sos = biquad_sos(target.kind, self._cutoff, self._q, self.sr)
        out, self._zi = sosfilt(sos, block, zi=self._zi)
        return out.astype(np.float64)


# ── Delay ────────────────────────────────────────────────


class DelayLine:
    """Feedback-free delay with fractional, block-smoothed delay time."""

    def __init__(self, max_delay_s: float = 0.3, sr: int = 44100) -> None:
        self.sr = sr
        self.max_delay_s = max_delay_s
        self._history = np.zeros(int(math.ceil(max_delay_s * sr)) + 2, dtype=np.float64)
        self._delay = SmoothedGain(0.0)  # in samples

    @property
    def delay_s(self) -> float:
        return self._delay.target / self.sr

    def set_delay(self, seconds: float) -> None:
        seconds = min(self.max_delay_s, max(0.0, seconds))
        self._delay.set(seconds * self.sr)

    def process(self, block: NDArray[np.float64]) -> NDArray[np.float64]:
        n = len(block)
        h = len(self._history)
        ext = np.concatenate([self._history, block])

        delays = self._delay.ramp(n)
        pos = h + np.arange(n, dtype=np.float64) - delays
        i0 = np.floor(pos).astype(np.int64)
        frac = pos - i0
        i1 = np.minimum(i0 + 1, len(ext) - 1)
        out = ext[i0] * (1.0 - frac) + ext[i1] * frac

        self._history = ext[-h:]
        return out


# ── Distortion ───────────────────────────────────────────


CURVE_SAMPLES = 44100


def curve_positions(samples: int = CURVE_SAMPLES) -> NDArray[np.float64]:
    """Input level each curve sample stands for: k·2/N - 1, so 0 lands on a sample."""
    return np.arange(samples, dtype=np.float64) * 2 / samples - 1


def make_distortion_curve(amount: float, samples: int = CURVE_SAMPLES) -> NDArray[np.float64]:
    """Waveshaper transfer curve (3+k)·x·20° / (π + k·|x|) over x ∈ [-1, 1)."""
    deg = np.pi / 180.0
    x = curve_positions(samples)
    return (3 + amount) * x * 20 * deg / (np.pi + amount * np.abs(x))


class Distortion:
    """Waveshaper; curve swaps are crossfaded over one block."""

    def __init__(self, amount: float = 0.0) -> None:
        self.amount = amount
        self._curve = make_distortion_curve(amount)
        self._previous: NDArray[np.float64] | None = None
        self._grid = curve_positions(len(self._curve))

    def set_amount(self, amount: float) -> None:
        if amount == self.amount:
            return
        # several updates within one block fade from the curve last heard
        if self._previous is None:
            self._previous = self._curve
        self.amount = amount
        self._curve = make_distortion_curve(amount)

    def _shape(self, block: NDArray[np.float64], curve: NDArray[np.float64]) -> NDArray[np.float64]:
        return np.interp(block, self._grid, curve)

    def process(self, block: NDArray[np.float64]) -> NDArray[np.float64]:
        out = self._shape(block, self._curve)
        if self._previous is not None:
            fade = np.arange(1, len(block) + 1, dtype=np.float64) / max(len(block), 1)
            out = self._shape(block, self._previous) * (1.0 - fade) + out * fade
            self._previous = None
        return out


# ── Diffusion (reverb) ───────────────────────────────────


def make_impulse(
    seconds: float = 2.0,
    sr: int = 44100,
    seed: int | None = None,
) -> NDArray[np.float64]:
    """Random noise under a (1 - t)² decay, scaled to unit energy."""
    length = max(1, int(seconds * sr))
    rng = np.random.default_rng(seed)
    decay = (1.0 - np.arange(length, dtype=np.float64) / length) ** 2
    ir = rng.uniform(-1.0, 1.0, length) * decay
    energy = np.sqrt(np.sum(ir**2))
    if energy > 0:
        ir /= energy
    return ir


class Diffuser:
    """Streaming overlap-add convolution with a fixed impulse."""

    def __init__(self, impulse: NDArray[np.float64]) -> None:
        self.impulse = impulse
        self._tail = np.zeros(max(len(impulse) - 1, 0), dtype=np.float64)

    def process(self, block: NDArray[np.float64]) -> NDArray[np.float64]:
        n = len(block)
        full = fftconvolve(block, self.impulse)
        full[: len(self._tail)] += self._tail

        self._tail = full[n:].copy()
        return full[:n].copy()
