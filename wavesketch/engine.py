"""WAVESKETCH Engine — Note events and parameter updates in, audio out.

SynthEngine ties the pieces together: the current tone table, the voice
manager, the signal graph and an output sink. Until initialize() has
opened the sink the engine is inert and note-ons are dropped.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Iterable

import numpy as np
import structlog
from numpy.typing import NDArray

from wavesketch.config import settings
from wavesketch.ear.analyzer import AnalysisResult, analyze
from wavesketch.hands.curve import Curve, as_curve, curve_from_json, curve_to_json
from wavesketch.hands.effects import EffectsParams, FilterParams
from wavesketch.hands.envelope import EnvelopeParams
from wavesketch.hands.graph import GraphConfig, SignalGraph
from wavesketch.hands.output import (
    AudioSink,
    DeviceInitError,
    NullSink,
    SoundDeviceSink,
    save_audio,
)
from wavesketch.hands.synth import ToneTable, rebuild_tone, sine_cycle
from wavesketch.hands.voices import Voice, VoiceManager

logger = structlog.get_logger()


class SampleClock:
    """Engine time, advanced only by rendering: frames played / sample rate."""

    def __init__(self, sr: int) -> None:
        self.sr = sr
        self.frames = 0

    @property
    def now(self) -> float:
        return self.frames / self.sr

    def advance(self, frames: int) -> None:
        self.frames += frames

    def __call__(self) -> float:
        return self.now


class SynthEngine:
    """Polyphonic drawn-waveform synthesizer."""

    def __init__(
        self,
        sink: AudioSink | None = None,
        graph_config: GraphConfig | None = None,
        voices: VoiceManager | None = None,
    ) -> None:
        self.graph_config = graph_config or GraphConfig.from_settings()
        self.sr = self.graph_config.sample_rate
        self.clock = SampleClock(self.sr)
        self.voices = voices or VoiceManager(self.clock, sr=self.sr)
        self.sink = sink

        self.envelope = EnvelopeParams()
        self.filter = FilterParams()
        self.effects = EffectsParams()
        self.master_pct = self.graph_config.initial_master * 100.0
        self.curve: Curve = []

        self.graph: SignalGraph | None = None
        self._pending: SignalGraph | None = None  # rendered while the sink opens
        self._lock = threading.RLock()

    # ── Lifecycle ──

    @property
    def is_active(self) -> bool:
        return self.graph is not None

    def _default_sink(self) -> AudioSink:
        return SoundDeviceSink(
            sr=self.sr,
            block_size=settings.block_size,
            channels=settings.channels,
            device=settings.output_device,
        )

    async def initialize(self, sink: AudioSink | None = None) -> None:
        """Build the graph and start the output sink.

        Safe to call again after a failure. Raises DeviceInitError when the
        device cannot be opened; the engine then stays inert.
        """
        if self.is_active:
            return

        chosen = sink or self.sink or self._default_sink()
        graph = SignalGraph(self.graph_config, self.filter, self.effects)
        graph.set_master_volume(self.master_pct)
        graph.master.current = graph.master.target

        with self._lock:
            self._pending = graph
        try:
            await asyncio.to_thread(chosen.start, self.render)
        except DeviceInitError as e:
            with self._lock:
                self._pending = None
            logger.error("Audio device initialization failed", error=str(e))
            raise

        with self._lock:
            self.graph = graph
            self._pending = None
        self.sink = chosen
        logger.info("Audio engine initialized", sample_rate=self.sr, sink=type(chosen).__name__)

    def close(self) -> None:
        """Release every note and stop the sink."""
        self.stop_all()
        if self.sink is not None:
            self.sink.stop()
        with self._lock:
            self.graph = None
        logger.info("Audio engine closed")

    # ── Notes ──

    def note_on(
        self,
        key: str,
        freq_hz: float,
        envelope: EnvelopeParams | None = None,
    ) -> Voice | None:
        """Start key; dropped (returns None) while the engine is inert."""
        if not self.is_active:
            logger.debug("Note dropped, engine inactive", key=key)
            return None
        with self._lock:
            return self.voices.note_on(key, freq_hz, envelope or self.envelope)

    def note_off(self, key: str) -> None:
        with self._lock:
            self.voices.note_off(key)

    def stop_all(self) -> None:
        with self._lock:
            self.voices.stop_all()

    # ── Parameters ──

    def set_envelope(self, params: EnvelopeParams) -> None:
        """Envelope for subsequent note-ons; sounding voices keep theirs."""
        self.envelope = params.clamped()

    def set_filter(self, params: FilterParams) -> None:
        self.filter = params.clamped()
        with self._lock:
            graph = self.graph or self._pending
            if graph is not None:
                graph.set_filter(self.filter)

    def set_effects(self, params: EffectsParams) -> None:
        self.effects = params.clamped()
        with self._lock:
            graph = self.graph or self._pending
            if graph is not None:
                graph.set_effects(self.effects)

    def set_master_volume(self, pct: float) -> None:
        self.master_pct = min(100.0, max(0.0, float(pct)))
        with self._lock:
            graph = self.graph or self._pending
            if graph is not None:
                graph.set_master_volume(pct)

    # ── Waveform ──

    @property
    def tone(self) -> ToneTable:
        return self.voices.tone

    def update_waveform(self, points: Iterable[Any]) -> ToneTable:
        """Rebuild the tone for future voices from a curve snapshot.

        An empty curve keeps the current tone.
        """
        curve = as_curve(points)
        if not curve:
            return self.voices.tone

        tone = rebuild_tone(curve)
        with self._lock:
            self.curve = curve
            self.voices.set_tone(tone)
        return tone

    @property
    def display_cycle(self) -> NDArray[np.float64]:
        """Time-domain cycle to show: the last drawn capture, else a sine."""
        if self.voices.has_custom_tone:
            return np.asarray(self.tone.samples)
        return sine_cycle(len(self.tone.wave))

    def analyze(self, points: Iterable[Any] | None = None) -> AnalysisResult:
        """Metrics for the given curve, or for the last loaded one."""
        return analyze(self.curve if points is None else as_curve(points))

    def save_curve(self, path: str | Path) -> Path:
        """Write the last loaded curve as a JSON list of points."""
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(curve_to_json(self.curve))
        return p

    def load_curve(self, path: str | Path) -> ToneTable:
        """Read a saved curve and make it the current waveform."""
        return self.update_waveform(curve_from_json(Path(path).read_text()))

    # ── Rendering ──

    def render(self, frames: int) -> NDArray[np.float64]:
        """Next block of mono output; silence while inert."""
        with self._lock:
            graph = self.graph or self._pending
            if graph is None:
                return np.zeros(frames, dtype=np.float64)
            times = self.clock.now + np.arange(frames, dtype=np.float64) / self.sr
            out = graph.process(self.voices.render(times))
            self.clock.advance(frames)
            self.voices.reap(self.clock.now)
            return out

    def render_seconds(self, seconds: float, block_size: int | None = None) -> NDArray[np.float64]:
        """Render a stretch of audio block by block."""
        total = int(seconds * self.sr)
        block = block_size or settings.block_size
        chunks = []
        done = 0
        while done < total:
            n = min(block, total - done)
            chunks.append(self.render(n))
            done += n
        return np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float64)

    def render_to_file(self, path: str | Path, seconds: float) -> Path:
        """Bounce the next seconds of output to a WAV file."""
        return save_audio(self.render_seconds(seconds), path, self.sr)


def headless_engine(**kwargs: Any) -> SynthEngine:
    """Engine wired to a NullSink; call initialize() before playing.

    Nothing pulls audio on its own: drive time with render() or
    render_seconds(), which is also when finished voices are dropped.
    """
    return SynthEngine(sink=NullSink(), **kwargs)
