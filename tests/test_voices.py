"""WAVESKETCH Voice Tests — gain automation, ADSR phases, voice lifecycle.

All timing runs on a manual clock, so nothing here sleeps.
"""

from __future__ import annotations

import numpy as np
import pytest

from wavesketch.hands.envelope import (
    EnvelopeParams,
    GainTimeline,
    VoiceState,
    schedule_attack,
    schedule_release,
)
from wavesketch.hands.presets import load_preset
from wavesketch.hands.synth import rebuild_tone
from wavesketch.hands.voices import VoiceManager


class ManualClock:
    """Clock the test moves by hand."""

    def __init__(self, t: float = 0.0) -> None:
        self.t = t

    def __call__(self) -> float:
        return self.t


ENV = EnvelopeParams(attack_ms=100, decay_ms=300, sustain_pct=70, release_ms=500)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(1.0)


@pytest.fixture
def manager(clock: ManualClock) -> VoiceManager:
    return VoiceManager(clock, sr=8000, release_s=0.1, release_mode="fixed")


# ── Timeline ─────────────────────────────────────────────


def test_attack_decay_sustain_shape() -> None:
    tl = GainTimeline()
    schedule_attack(tl, ENV, 1.0)

    assert tl.value_at(0.5) == 0.0
    assert tl.value_at(1.0) == 0.0
    assert tl.value_at(1.05) == pytest.approx(0.5)
    assert tl.value_at(1.1) == pytest.approx(1.0)
    assert tl.value_at(1.25) == pytest.approx(0.85)
    assert tl.value_at(1.4) == pytest.approx(0.7)
    assert tl.value_at(60.0) == pytest.approx(0.7)


def test_vectorised_values_match_pointwise() -> None:
    tl = GainTimeline()
    schedule_attack(tl, ENV, 0.0)
    schedule_release(tl, 0.2, 0.1)

    times = np.linspace(-0.1, 0.5, 241)
    expected = [tl.value_at(t) for t in times]
    np.testing.assert_allclose(tl.values(times), expected, atol=1e-12)


def test_release_starts_from_current_gain() -> None:
    """Release mid-attack ramps down from wherever the gain was."""
    tl = GainTimeline()
    schedule_attack(tl, ENV, 1.0)
    end = schedule_release(tl, 1.05, 0.1)

    assert end == pytest.approx(1.15)
    assert tl.value_at(1.05) == pytest.approx(0.5)
    assert tl.value_at(1.1) == pytest.approx(0.25)
    assert tl.value_at(1.15) == pytest.approx(0.0)
    assert tl.value_at(2.0) == 0.0


def test_zero_attack_jumps_to_full() -> None:
    tl = GainTimeline()
    schedule_attack(tl, EnvelopeParams(attack_ms=0, decay_ms=0, sustain_pct=40), 0.0)
    assert tl.value_at(0.0) == pytest.approx(0.4)


def test_empty_timeline_holds_initial() -> None:
    tl = GainTimeline(initial=0.25)
    assert tl.value_at(3.0) == 0.25
    np.testing.assert_allclose(tl.values(np.array([0.0, 1.0])), 0.25)


def test_envelope_params_clamped() -> None:
    env = EnvelopeParams(attack_ms=-5, decay_ms=-1, sustain_pct=140, release_ms=-3).clamped()
    assert env == EnvelopeParams(attack_ms=0, decay_ms=0, sustain_pct=100, release_ms=0)


# ── Voice States ─────────────────────────────────────────


def test_voice_walks_through_adsr(manager: VoiceManager, clock: ManualClock) -> None:
    voice = manager.note_on("C4", 261.63, ENV)

    assert voice.state_at(0.9) == VoiceState.IDLE
    assert voice.state_at(1.05) == VoiceState.ATTACKING
    assert voice.state_at(1.2) == VoiceState.DECAYING
    assert voice.state_at(3.0) == VoiceState.SUSTAINING
    assert voice.gain_at(3.0) == pytest.approx(0.7)

    clock.t = 3.0
    manager.note_off("C4")
    assert voice.is_releasing
    assert voice.state_at(3.05) == VoiceState.RELEASING
    assert voice.gain_at(3.05) == pytest.approx(0.35)
    assert voice.state_at(3.1) == VoiceState.FINISHED


# ── Lifecycle ────────────────────────────────────────────


def test_duplicate_note_on_never_stacks(manager: VoiceManager) -> None:
    first = manager.note_on("C4", 261.63, ENV)
    second = manager.note_on("C4", 261.63, ENV)

    assert first is not second
    assert manager.held_keys == ["C4"]
    assert len(manager) == 1
    assert manager.get("C4") is second


def test_note_off_releases_then_reaps(manager: VoiceManager, clock: ManualClock) -> None:
    manager.note_on("C4", 261.63, ENV)
    clock.t = 1.5
    manager.note_off("C4")

    assert manager.held_keys == []
    assert len(manager) == 1  # release tail still ringing

    assert manager.reap(1.55) == 0
    clock.t = 1.6
    assert manager.reap() == 1
    assert len(manager) == 0

    manager.note_off("C4")
    assert len(manager) == 0


def test_note_off_unknown_key_is_noop(manager: VoiceManager) -> None:
    manager.note_off("G9")
    assert len(manager) == 0


def test_retrigger_during_release(manager: VoiceManager, clock: ManualClock) -> None:
    """A fresh note-on while the old one rings out keeps both until reaped."""
    manager.note_on("A4", 440.0, ENV)
    manager.note_off("A4")
    manager.note_on("A4", 440.0, ENV)

    assert manager.held_keys == ["A4"]
    assert len(manager) == 2
    clock.t += 0.2
    manager.reap()
    assert len(manager) == 1


def test_stop_all(manager: VoiceManager, clock: ManualClock) -> None:
    for key, freq in (("C4", 261.63), ("E4", 329.63), ("G4", 392.0)):
        manager.note_on(key, freq, ENV)
    manager.stop_all()

    assert manager.held_keys == []
    clock.t += 1.0
    manager.reap()
    assert len(manager) == 0


def test_envelope_release_mode(clock: ManualClock) -> None:
    manager = VoiceManager(clock, sr=8000, release_s=0.1, release_mode="envelope")
    voice = manager.note_on("C4", 261.63, ENV)
    manager.note_off("C4")
    assert voice.release_end == pytest.approx(clock.t + 0.5)


# ── Tone Snapshots ───────────────────────────────────────


def test_sawtooth_until_first_rebuild(manager: VoiceManager) -> None:
    assert not manager.has_custom_tone
    assert manager.note_on("C4", 261.63, ENV).tone.name == "sawtooth"


def test_sounding_voices_keep_their_tone(manager: VoiceManager) -> None:
    old = manager.note_on("C4", 261.63, ENV)
    square = rebuild_tone(load_preset("square"))
    manager.set_tone(square)
    new = manager.note_on("E4", 329.63, ENV)

    assert old.tone.name == "sawtooth"
    assert new.tone is square


# ── Rendering ────────────────────────────────────────────


def test_render_follows_gain(manager: VoiceManager, clock: ManualClock) -> None:
    manager.note_on("A4", 440.0, ENV)
    times = clock.t + np.arange(400) / 8000.0
    out = manager.render(times)

    assert out[0] == 0.0
    assert np.all(np.isfinite(out))
    assert np.max(np.abs(out[:80])) < np.max(np.abs(out[320:]))
