"""Audio output backends.

A backend owns the output device and pulls samples from a render callback:

    backend.start(render)   # render(frames) -> float32 array, called per block

Two implementations are provided:

    SoundDeviceBackend — real output through sounddevice/PortAudio. The
                         module is imported on start() so the engine can be
                         built on machines without PortAudio.
    OfflineBackend     — no device; frames are pulled explicitly with pull().
                         Used for headless runs and tests.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

import numpy as np

logger = logging.getLogger(__name__)

RenderFn = Callable[[int], np.ndarray]


class AudioUnavailableError(RuntimeError):
    """Raised when the output device cannot be opened."""


class AudioBackend(Protocol):
    sample_rate: int

    @property
    def suspended(self) -> bool: ...

    def start(self, render: RenderFn) -> None: ...

    def resume(self) -> None: ...

    def close(self) -> None: ...


class SoundDeviceBackend:
    def __init__(self, sample_rate: int = 44100, blocksize: int = 512) -> None:
        self.sample_rate = sample_rate
        self._blocksize = blocksize
        self._stream = None

    @property
    def suspended(self) -> bool:
        return self._stream is None or not self._stream.active

    def start(self, render: RenderFn) -> None:
        try:
            import sounddevice as sd
        except OSError as e:
            raise AudioUnavailableError(f"PortAudio library not found: {e}") from e

        def callback(outdata, frames, time, status) -> None:
            if status:
                logger.debug("audio callback status: %s", status)
            outdata[:, 0] = render(frames)

        try:
            self._stream = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self._blocksize,
                callback=callback,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            self._stream = None
            raise AudioUnavailableError(f"Cannot open audio output: {e}") from e
        logger.info("audio output started sample_rate=%d", self.sample_rate)

    def resume(self) -> None:
        if self._stream is not None and not self._stream.active:
            self._stream.start()

    def close(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None


class OfflineBackend:
    """Renders only when asked. Pass start_suspended=True to mimic a browser audio context."""

    def __init__(self, sample_rate: int = 44100, start_suspended: bool = False) -> None:
        self.sample_rate = sample_rate
        self._render: RenderFn | None = None
        self._suspended = start_suspended
        self.resume_calls = 0

    @property
    def suspended(self) -> bool:
        return self._suspended

    def start(self, render: RenderFn) -> None:
        self._render = render

    def resume(self) -> None:
        self.resume_calls += 1
        self._suspended = False

    def close(self) -> None:
        self._render = None

    def pull(self, frames: int) -> np.ndarray:
        """Render the next `frames` samples (silence while suspended or not started)."""
        if self._render is None or self._suspended:
            return np.zeros(frames, dtype=np.float32)
        return self._render(frames)

    def pull_seconds(self, seconds: float) -> np.ndarray:
        return self.pull(int(seconds * self.sample_rate))
