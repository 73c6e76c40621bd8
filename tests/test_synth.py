"""WAVESKETCH Synthesis Tests — resampling, harmonic extraction, tone tables."""

from __future__ import annotations

import numpy as np
import pytest

from wavesketch.hands.curve import as_curve
from wavesketch.hands.presets import load_preset
from wavesketch.hands.synth import (
    WavetableOscillator,
    extract_harmonics,
    harmonic_boost,
    rebuild_tone,
    resample_curve,
    sawtooth_tone,
    sine_cycle,
)


# ── Resample ─────────────────────────────────────────────


def test_resample_length_and_range() -> None:
    samples = resample_curve(load_preset("triangle"), 1024)
    assert samples.shape == (1024,)
    assert np.all(samples >= -1.0) and np.all(samples <= 1.0)


def test_resample_empty_is_silent() -> None:
    assert not np.any(resample_curve([], 256))


def test_resample_clamps_outside_drawn_range() -> None:
    """Before the first point → first y; after the last → last y."""
    samples = resample_curve(as_curve([(20, 100), (80, 0)]), 100)

    assert samples[0] == pytest.approx(1.0)
    assert samples[10] == pytest.approx(1.0)
    assert samples[50] == pytest.approx(0.0)
    assert samples[99] == pytest.approx(-1.0)


def test_resample_sorts_points() -> None:
    ordered = resample_curve(as_curve([(0, 0), (50, 100), (100, 0)]), 64)
    shuffled = resample_curve(as_curve([(100, 0), (0, 0), (50, 100)]), 64)
    np.testing.assert_allclose(ordered, shuffled)


def test_resample_single_point() -> None:
    samples = resample_curve(as_curve([(40, 75)]), 32)
    np.testing.assert_allclose(samples, 0.5)


# ── Harmonics ────────────────────────────────────────────


def test_harmonic_boost_favours_low_harmonics() -> None:
    assert harmonic_boost(1) == pytest.approx(1.5)
    assert harmonic_boost(7) == pytest.approx(1.5)
    assert harmonic_boost(8) == pytest.approx(1.5**0.5)
    assert harmonic_boost(32) == pytest.approx(1.5**0.5)


def test_dc_slot_is_zero() -> None:
    real, imag = extract_harmonics(np.full(128, 0.7), 16)
    assert len(real) == len(imag) == 17
    assert real[0] == 0.0 and imag[0] == 0.0
    assert np.allclose(real, 0.0, atol=1e-12)


def test_pure_sine_extracts_fundamental() -> None:
    real, imag = extract_harmonics(sine_cycle(1024), 32)
    assert imag[1] == pytest.approx(0.5 * 1.5)
    assert np.max(np.hypot(real[2:], imag[2:])) < 1e-9


def test_sine_curve_fundamental_dominates() -> None:
    """Drawn sine: harmonics 2..H negligible next to harmonic 1."""
    tone = rebuild_tone(load_preset("sine"))
    mags = tone.magnitudes

    assert tone.n_harmonics == 32
    assert mags[1] == pytest.approx(0.4 * 1.5, abs=0.01)
    assert np.max(mags[2:]) < 0.02 * mags[1]


def test_square_curve_is_odd_heavy() -> None:
    tone = rebuild_tone(load_preset("square"))
    mags = tone.magnitudes

    assert mags[3] > 0.25 * mags[1]
    assert mags[5] > 0.15 * mags[1]
    assert mags[2] < 0.1 * mags[1]
    assert mags[4] < 0.1 * mags[1]


# ── Tone Tables ──────────────────────────────────────────


def test_tone_wave_is_peak_normalised() -> None:
    tone = rebuild_tone(load_preset("complex"))
    assert np.max(np.abs(tone.wave)) == pytest.approx(1.0)
    assert len(tone.wave) == len(tone.samples) == 1024


def test_flat_curve_gives_silent_tone() -> None:
    tone = rebuild_tone(as_curve([(0, 50), (100, 50)]))
    assert not np.any(tone.wave)


def test_tone_table_is_read_only() -> None:
    tone = rebuild_tone(load_preset("sine"))
    with pytest.raises(ValueError):
        tone.wave[0] = 0.0
    with pytest.raises(ValueError):
        tone.real[1] = 0.0


def test_sawtooth_fallback() -> None:
    tone = sawtooth_tone(512, 16)

    assert tone.name == "sawtooth"
    assert tone.n_harmonics == 16
    assert not np.any(tone.real)
    assert tone.imag[1] == pytest.approx(2 / np.pi)
    assert tone.imag[2] == pytest.approx(-1 / np.pi)
    assert np.max(np.abs(tone.wave)) == pytest.approx(1.0)


# ── Oscillator ───────────────────────────────────────────


def test_oscillator_is_continuous_across_blocks() -> None:
    tone = rebuild_tone(load_preset("sawtooth"))
    whole = WavetableOscillator(tone, 261.63, 44100).render(300)

    split = WavetableOscillator(tone, 261.63, 44100)
    joined = np.concatenate([split.render(100), split.render(200)])

    np.testing.assert_allclose(joined, whole, atol=1e-9)


def test_oscillator_pitch() -> None:
    """One cycle of a 100 Hz tone at 1 kHz spans exactly 10 samples."""
    osc = WavetableOscillator(sawtooth_tone(), 100.0, 1000)
    out = osc.render(30)
    np.testing.assert_allclose(out[:10], out[10:20], atol=1e-9)
    assert min(osc.phase, 1.0 - osc.phase) < 1e-9
