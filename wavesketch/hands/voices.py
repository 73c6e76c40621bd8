"""WAVESKETCH Voice Manager — One sounding voice per note key.

Voices are keyed by note name ("C4", "A#3", ...). A second note-on for a
key that is still held cuts the old voice off at once and starts a new
one. note-off moves the voice to the release pool, where it rings out
its release ramp and is dropped by reap() once silent.

Time comes from an injected clock (any zero-arg callable returning
seconds), so lifecycles can be driven deterministically in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Literal

import numpy as np
import structlog
from numpy.typing import NDArray

from wavesketch.config import settings
from wavesketch.hands.envelope import (
    EnvelopeParams,
    GainTimeline,
    VoiceState,
    schedule_attack,
    schedule_release,
)
from wavesketch.hands.synth import ToneTable, WavetableOscillator, sawtooth_tone

logger = structlog.get_logger()

Clock = Callable[[], float]
ReleaseMode = Literal["fixed", "envelope"]


# ── Voice ────────────────────────────────────────────────


@dataclass
class Voice:
    """A single note: oscillator + gain automation + release flag."""

    key: str
    oscillator: WavetableOscillator
    envelope: EnvelopeParams
    started_at: float
    gain: GainTimeline = field(default_factory=GainTimeline)
    released_at: float | None = None
    release_end: float | None = None

    @property
    def tone(self) -> ToneTable:
        return self.oscillator.table

    @property
    def frequency(self) -> float:
        return self.oscillator.freq_hz

    @property
    def is_releasing(self) -> bool:
        return self.released_at is not None

    def state_at(self, t: float) -> VoiceState:
        """Envelope phase at absolute time t."""
        if t < self.started_at:
            return VoiceState.IDLE
        if self.release_end is not None:
            if t >= self.release_end:
                return VoiceState.FINISHED
            if self.released_at is not None and t >= self.released_at:
                return VoiceState.RELEASING
        elapsed = t - self.started_at
        if elapsed < self.envelope.attack_s:
            return VoiceState.ATTACKING
        if elapsed < self.envelope.attack_s + self.envelope.decay_s:
            return VoiceState.DECAYING
        return VoiceState.SUSTAINING

    def gain_at(self, t: float) -> float:
        return self.gain.value_at(t)

    def render(self, times: NDArray[np.float64]) -> NDArray[np.float64]:
        """Oscillator output times gain for a block of sample times."""
        return self.oscillator.render(len(times)) * self.gain.values(times)


# ── Manager ──────────────────────────────────────────────


class VoiceManager:
    """Owns every voice: creation, preemption, release and reaping."""

    def __init__(
        self,
        clock: Clock,
        sr: int | None = None,
        release_s: float | None = None,
        release_mode: ReleaseMode | None = None,
        fallback: ToneTable | None = None,
    ) -> None:
        self.clock = clock
        self.sr = sr or settings.sample_rate
        self.release_s = settings.release_s if release_s is None else release_s
        self.release_mode: ReleaseMode = release_mode or settings.release_mode
        self._fallback = fallback
        self._tone: ToneTable | None = None
        self._held: dict[str, Voice] = {}
        self._releasing: list[Voice] = []

    # ── Tone ──

    @property
    def tone(self) -> ToneTable:
        """Table handed to the next voice: the last rebuild, else sawtooth."""
        if self._tone is not None:
            return self._tone
        if self._fallback is None:
            self._fallback = sawtooth_tone()
        return self._fallback

    @property
    def has_custom_tone(self) -> bool:
        return self._tone is not None

    def set_tone(self, tone: ToneTable) -> None:
        """Swap the table for future voices; sounding voices keep theirs."""
        self._tone = tone

    # ── Queries ──

    @property
    def held_keys(self) -> list[str]:
        return list(self._held)

    @property
    def voices(self) -> list[Voice]:
        """Every voice still producing sound, held ones first."""
        return list(self._held.values()) + list(self._releasing)

    def __len__(self) -> int:
        return len(self._held) + len(self._releasing)

    def get(self, key: str) -> Voice | None:
        return self._held.get(key)

    # ── Events ──

    def note_on(self, key: str, freq_hz: float, envelope: EnvelopeParams) -> Voice:
        """Start a voice for key, cutting off any voice already held there."""
        old = self._held.pop(key, None)
        if old is not None:
            logger.debug("Voice preempted", key=key)

        now = self.clock()
        env = envelope.clamped()
        voice = Voice(
            key=key,
            oscillator=WavetableOscillator(self.tone, freq_hz, self.sr),
            envelope=env,
            started_at=now,
        )
        schedule_attack(voice.gain, env, now)
        self._held[key] = voice
        return voice

    def note_off(self, key: str) -> None:
        """Release key. Unknown or already-released keys are ignored."""
        voice = self._held.pop(key, None)
        if voice is None:
            return

        now = self.clock()
        release = voice.envelope.release_s if self.release_mode == "envelope" else self.release_s
        voice.released_at = now
        voice.release_end = schedule_release(voice.gain, now, release)
        self._releasing.append(voice)

    def stop_all(self) -> None:
        """Release every held key."""
        for key in list(self._held):
            self.note_off(key)

    def reap(self, now: float | None = None) -> int:
        """Drop voices whose release has finished. Returns how many."""
        t = self.clock() if now is None else now
        alive = [v for v in self._releasing if v.release_end is None or t < v.release_end]
        dropped = len(self._releasing) - len(alive)
        self._releasing = alive
        return dropped

    # ── Rendering ──

    def render(self, times: NDArray[np.float64]) -> NDArray[np.float64]:
        """Sum of every voice over a block of sample times."""
        out = np.zeros(len(times), dtype=np.float64)
        for voice in self.voices:
            out += voice.render(times)
        return out
