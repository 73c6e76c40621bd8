"""WAVESKETCH Presets — Stock curve shapes and the note frequency table."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Callable

from wavesketch.hands.curve import Curve, CurvePoint


# ── Curve Generators ─────────────────────────────────────


def _grid(step: int) -> range:
    return range(0, 101, step)


def _sine() -> Curve:
    return [CurvePoint(i, 50 + 40 * math.sin(i / 100 * 2 * math.pi)) for i in _grid(2)]


def _square() -> Curve:
    return [CurvePoint(i, 20 if i < 50 else 80) for i in _grid(1)]


def _sawtooth() -> Curve:
    return [CurvePoint(i, 20 + i / 100 * 60) for i in _grid(2)]


def _triangle() -> Curve:
    return [
        CurvePoint(i, 20 + i / 50 * 60 if i <= 50 else 80 - (i - 50) / 50 * 60)
        for i in _grid(2)
    ]


def _noise(seed: int | None = None) -> Curve:
    rng = random.Random(seed)
    return [CurvePoint(i, 20 + rng.random() * 60) for i in _grid(3)]


def _pulse() -> Curve:
    return [CurvePoint(i, 80 if i < 25 else 20) for i in _grid(1)]


def _complex() -> Curve:
    points = []
    for i in _grid(2):
        phase = i / 100 * 2 * math.pi
        y = 50 + 25 * (math.sin(phase) + 0.5 * math.sin(2 * phase) + 0.3 * math.sin(3 * phase))
        points.append(CurvePoint(i, max(10.0, min(90.0, y))))
    return points


def _bass() -> Curve:
    points = []
    for i in _grid(2):
        base = math.sin(i / 100 * 2 * math.pi)
        sub = 0.7 * math.sin(i / 100 * math.pi)
        y = 50 + 30 * (base + sub)
        points.append(CurvePoint(i, max(10.0, min(90.0, y))))
    return points


@dataclass(frozen=True)
class CurvePreset:
    """Named curve generator."""

    name: str
    description: str
    generate: Callable[[], Curve]


PRESETS: dict[str, CurvePreset] = {
    "sine": CurvePreset("Sine Wave", "Pure, smooth sine wave", _sine),
    "square": CurvePreset("Square Wave", "Sharp, digital square wave", _square),
    "sawtooth": CurvePreset("Sawtooth Wave", "Rising sawtooth wave", _sawtooth),
    "triangle": CurvePreset("Triangle Wave", "Symmetric triangle wave", _triangle),
    "noise": CurvePreset("Random Noise", "Random waveform", _noise),
    "pulse": CurvePreset("Pulse Wave", "Narrow pulse wave", _pulse),
    "complex": CurvePreset("Complex Wave", "Multi-harmonic complex wave", _complex),
    "bass": CurvePreset("Bass Wave", "Deep bass-focused wave", _bass),
}


def load_preset(name: str, seed: int | None = None) -> Curve:
    """Generate the points of a stock preset. Raises KeyError if unknown."""
    if name == "noise":
        return _noise(seed)
    return PRESETS[name].generate()


# ── Note Table ───────────────────────────────────────────


_NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

NOTE_FREQUENCIES: dict[str, float] = {
    f"{name}{octave}": round(440.0 * 2.0 ** ((octave * 12 + idx + 12 - 69) / 12.0), 2)
    for octave in (3, 4, 5)
    for idx, name in enumerate(_NOTE_NAMES)
}


def get_frequency(note: str, octave: int = 4) -> float:
    """Frequency of a note name (octave digits ignored) in the given octave.

    Notes outside C3..B5 fall back to A4 = 440 Hz.
    """
    base = "".join(ch for ch in note if not ch.isdigit())
    return NOTE_FREQUENCIES.get(f"{base}{octave}", 440.0)


def key_frequency(key: str) -> float:
    """Frequency for a full key like "C#4"; a missing octave means 4."""
    octave = int(key[-1]) if key[-1:].isdigit() else 4
    return get_frequency(key, octave)
