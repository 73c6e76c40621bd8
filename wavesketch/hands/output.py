"""WAVESKETCH Output — Audio sinks the engine renders into.

SoundDeviceSink drives a PortAudio output stream whose callback pulls
blocks from the engine. NullSink stands in when no device is wanted
(tests, headless servers). save_audio bounces rendered audio to disk.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Protocol

import numpy as np
import soundfile as sf
import structlog
from numpy.typing import NDArray

logger = structlog.get_logger()

RenderFn = Callable[[int], NDArray[np.float64]]


class EngineError(Exception):
    """Base class for engine failures."""


class DeviceInitError(EngineError):
    """The output device could not be opened (missing, busy or denied)."""


class AudioSink(Protocol):
    def start(self, render: RenderFn) -> None: ...

    def stop(self) -> None: ...


class NullSink:
    """Accepts the render function and never calls it.

    Engine time only moves when blocks are rendered, so a headless caller
    must pull `render` itself; until then released voices are not reaped.
    """

    def __init__(self) -> None:
        self.render: RenderFn | None = None

    def start(self, render: RenderFn) -> None:
        self.render = render

    def stop(self) -> None:
        self.render = None


class SoundDeviceSink:
    """Realtime output through a sounddevice OutputStream."""

    def __init__(
        self,
        sr: int = 44100,
        block_size: int = 512,
        channels: int = 2,
        device: str | int | None = None,
    ) -> None:
        self.sr = sr
        self.block_size = block_size
        self.channels = channels
        self.device = device
        self._stream: Any = None
        self._render: RenderFn | None = None

    def _callback(self, outdata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.warning("Output stream status", status=str(status))
        if self._render is None:
            outdata.fill(0)
            return
        block = self._render(frames).astype(np.float32)
        outdata[:] = np.repeat(block[:, None], outdata.shape[1], axis=1)

    def start(self, render: RenderFn) -> None:
        # Imported lazily: importing sounddevice fails without PortAudio.
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            raise DeviceInitError(f"sounddevice unavailable: {e}") from e

        self._render = render
        try:
            self._stream = sd.OutputStream(
                samplerate=self.sr,
                blocksize=self.block_size,
                channels=self.channels,
                dtype="float32",
                device=self.device,
                callback=self._callback,
            )
            self._stream.start()
        except Exception as e:
            self._stream = None
            self._render = None
            raise DeviceInitError(f"Cannot open output device: {e}") from e

    def stop(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
        self._render = None


def save_audio(
    audio: NDArray[np.float64],
    path: str | Path,
    sr: int = 44100,
    channels: int = 1,
) -> Path:
    """Save audio array to WAV file."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if channels == 2 and audio.ndim == 1:
        sf.write(str(p), np.column_stack([audio, audio]), sr, subtype="PCM_24")
    else:
        sf.write(str(p), audio, sr, subtype="PCM_24")

    return p
