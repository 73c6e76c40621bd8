"""WAVESKETCH Curve Tests — smoothing, normalisation, presets, persistence."""

from __future__ import annotations

import pytest

from wavesketch.hands.curve import (
    CurvePoint,
    as_curve,
    curve_from_json,
    curve_to_json,
    normalize,
    prepare,
    smooth,
)
from wavesketch.hands.presets import (
    NOTE_FREQUENCIES,
    PRESETS,
    get_frequency,
    key_frequency,
    load_preset,
)


# ── Smooth ───────────────────────────────────────────────


def test_smooth_three_points() -> None:
    """Middle point becomes the mean of its neighbourhood; ends stay put."""
    curve = as_curve([(0, 0), (50, 90), (100, 0)])
    out = smooth(curve)

    assert out[0] == CurvePoint(0, 0)
    assert out[1] == CurvePoint(50, 30)
    assert out[2] == CurvePoint(100, 0)


def test_smooth_short_curves_pass_through() -> None:
    for pts in ([], [(0, 10)], [(0, 10), (100, 90)]):
        curve = as_curve(pts)
        assert smooth(curve) == curve


def test_smooth_uses_original_neighbours() -> None:
    """Each average reads the unsmoothed neighbours, not already-smoothed ones."""
    curve = as_curve([(0, 0), (25, 30), (50, 60), (75, 90), (100, 0)])
    out = smooth(curve)

    assert [p.y for p in out] == pytest.approx([0, 30, 60, 50, 0])


def test_smooth_leaves_input_untouched() -> None:
    curve = as_curve([(0, 0), (50, 90), (100, 0)])
    snapshot = list(curve)
    smooth(curve)
    assert curve == snapshot


# ── Normalize ────────────────────────────────────────────


def test_normalize_stretches_to_full_range() -> None:
    curve = as_curve([(0, 40), (30, 45), (60, 55), (100, 60)])
    out = normalize(curve)
    ys = [p.y for p in out]

    assert min(ys) == 0.0
    assert max(ys) == 100.0
    assert ys[1] == pytest.approx(25.0)
    assert [p.x for p in out] == [p.x for p in curve]


def test_normalize_flat_curve_is_identity() -> None:
    curve = as_curve([(0, 42), (50, 42), (100, 42)])
    assert normalize(curve) == curve


def test_normalize_empty() -> None:
    assert normalize([]) == []


def test_prepare_smooths_then_normalizes() -> None:
    curve = as_curve([(0, 10), (20, 80), (40, 20), (60, 90), (80, 30), (100, 60)])
    out = prepare(curve)
    ys = [p.y for p in out]

    assert min(ys) == 0.0
    assert max(ys) == 100.0
    assert len(out) == len(curve)


# ── Point Parsing / JSON ─────────────────────────────────


def test_as_curve_accepts_mixed_inputs() -> None:
    curve = as_curve([CurvePoint(0, 1), {"x": 10, "y": 20}, (30, 40)])
    assert curve == [CurvePoint(0, 1), CurvePoint(10, 20), CurvePoint(30, 40)]


def test_curve_json_keeps_order() -> None:
    curve = as_curve([(50, 10), (0, 90), (100, 50)])
    text = curve_to_json(curve)

    assert text.startswith('[{"x": 50')
    assert curve_from_json(text) == curve


# ── Presets ──────────────────────────────────────────────


def test_all_presets_stay_in_bounds() -> None:
    for name in PRESETS:
        curve = load_preset(name, seed=7)
        assert curve, name
        assert all(0 <= p.x <= 100 and 0 <= p.y <= 100 for p in curve), name


def test_square_preset_shape() -> None:
    curve = load_preset("square")
    assert len(curve) == 101
    assert {p.y for p in curve if p.x < 50} == {20}
    assert {p.y for p in curve if p.x >= 50} == {80}


def test_noise_preset_seeded() -> None:
    assert load_preset("noise", seed=3) == load_preset("noise", seed=3)


def test_unknown_preset_raises() -> None:
    with pytest.raises(KeyError):
        load_preset("organ")


# ── Note Table ───────────────────────────────────────────


def test_note_table() -> None:
    assert len(NOTE_FREQUENCIES) == 36
    assert NOTE_FREQUENCIES["A4"] == 440.0
    assert NOTE_FREQUENCIES["C4"] == 261.63
    assert NOTE_FREQUENCIES["B5"] == 987.77


def test_get_frequency() -> None:
    assert get_frequency("C", 3) == 130.81
    assert get_frequency("F#4", 5) == 739.99
    assert get_frequency("C", 7) == 440.0
    assert key_frequency("A#3") == 233.08
    assert key_frequency("E") == 329.63
