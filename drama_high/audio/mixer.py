"""Voice mixer with a smoothed master gain.

Every voice is summed here and scaled by the master gain before it reaches
the backend; nothing else writes to the output. The backend calls render()
from its own thread, so all voice bookkeeping happens under one lock.
"""

from __future__ import annotations

import threading

import numpy as np


class Voice:
    """A buffer being played, optionally looped, with a linear gain ramp."""

    def __init__(self, buffer: np.ndarray, *, loop: bool = False, gain: float = 1.0) -> None:
        self.buffer = np.asarray(buffer, dtype=np.float32)
        self.loop = loop
        self.gain = gain
        self.releasing = False
        self.done = len(self.buffer) == 0
        self._pos = 0
        self._target = gain
        self._step = 0.0

    def fade_to(self, target: float, frames: int, *, release: bool = False) -> None:
        """Ramp linearly to target over `frames` samples; release drops the voice at the end."""
        self._target = target
        self._step = (target - self.gain) / frames if frames > 0 else 0.0
        if frames <= 0:
            self.gain = target
        self.releasing = release
        if release and frames <= 0:
            self.done = True

    def _gain_curve(self, n: int) -> np.ndarray:
        if self._step == 0.0:
            if self.releasing:
                self.done = True
            return np.full(n, self.gain, dtype=np.float32)
        curve = self.gain + self._step * np.arange(1, n + 1)
        if self._step > 0:
            curve = np.minimum(curve, self._target)
        else:
            curve = np.maximum(curve, self._target)
        self.gain = float(curve[-1])
        if self.gain == self._target:
            self._step = 0.0
            if self.releasing:
                self.done = True
        return curve.astype(np.float32)

    def render(self, n: int) -> np.ndarray:
        out = np.zeros(n, dtype=np.float32)
        if self.done:
            return out
        length = len(self.buffer)
        if self.loop:
            idx = (self._pos + np.arange(n)) % length
            out[:] = self.buffer[idx]
            self._pos = (self._pos + n) % length
        else:
            chunk = self.buffer[self._pos:self._pos + n]
            out[:len(chunk)] = chunk
            self._pos += len(chunk)
            if self._pos >= length:
                self.done = True
        return out * self._gain_curve(n)


class Mixer:
    def __init__(self, sample_rate: int, master: float = 0.3) -> None:
        self.sample_rate = sample_rate
        self._master = master
        self._master_target = master
        self._time_constant = 0.0
        self._voices: list[Voice] = []
        self._lock = threading.Lock()

    @property
    def master(self) -> float:
        return self._master

    @property
    def master_target(self) -> float:
        return self._master_target

    @property
    def voices(self) -> list[Voice]:
        with self._lock:
            return list(self._voices)

    def add(self, voice: Voice) -> Voice:
        with self._lock:
            self._voices.append(voice)
        return voice

    def fade(self, voice: Voice, target: float, seconds: float, *, release: bool = False) -> None:
        with self._lock:
            voice.fade_to(target, int(seconds * self.sample_rate), release=release)

    def set_master(self, target: float, time_constant: float = 0.1) -> None:
        """Approach target exponentially with the given time constant (seconds)."""
        with self._lock:
            self._master_target = target
            self._time_constant = time_constant

    def _master_curve(self, n: int) -> np.ndarray:
        if self._master == self._master_target:
            return np.full(n, self._master, dtype=np.float32)
        if self._time_constant <= 0:
            self._master = self._master_target
            return np.full(n, self._master, dtype=np.float32)
        decay = np.exp(-np.arange(1, n + 1) / (self._time_constant * self.sample_rate))
        curve = self._master_target + (self._master - self._master_target) * decay
        self._master = float(curve[-1])
        if abs(self._master - self._master_target) < 1e-5:
            self._master = self._master_target
        return curve.astype(np.float32)

    def render(self, n: int) -> np.ndarray:
        """Mix the next n frames. Finished voices are dropped."""
        with self._lock:
            mix = np.zeros(n, dtype=np.float32)
            for voice in self._voices:
                mix += voice.render(n)
            self._voices = [v for v in self._voices if not v.done]
            out = mix * self._master_curve(n)
        return np.clip(out, -1.0, 1.0)
