"""Synthesis primitives: oscillators, noise, envelopes and filters.

Everything renders to mono float32 numpy arrays at a given sample rate.
Envelope follows the Web Audio automation model so cue recipes can be
written as a short list of breakpoints:

    env = Envelope().set(0.0, 0.0).linear(0.2, 0.05).exponential(0.001, 0.5)
    samples = env.render(n, sample_rate)
"""

from __future__ import annotations

from typing import Literal

import numpy as np

Waveform = Literal["sine", "triangle", "square", "sawtooth"]

_rng = np.random.default_rng()


def frames(seconds: float, sample_rate: int) -> int:
    return int(round(seconds * sample_rate))


class Envelope:
    """Breakpoint automation for a gain or frequency parameter.

    set(v, t)          jump to v at time t
    linear(v, t)       ramp linearly from the previous breakpoint to v at t
    exponential(v, t)  ramp exponentially; holds the previous value instead
                       when the two values are not both positive or both negative
    After the last breakpoint the value is held.
    """

    def __init__(self, initial: float = 0.0) -> None:
        self._initial = initial
        self._events: list[tuple[float, float, str]] = []

    def set(self, value: float, time: float) -> "Envelope":
        self._events.append((time, value, "set"))
        return self

    def linear(self, value: float, time: float) -> "Envelope":
        self._events.append((time, value, "linear"))
        return self

    def exponential(self, value: float, time: float) -> "Envelope":
        self._events.append((time, value, "exponential"))
        return self

    def render(self, n: int, sample_rate: int) -> np.ndarray:
        t = np.arange(n) / sample_rate
        out = np.empty(n, dtype=np.float64)
        prev_t, prev_v = 0.0, self._initial
        for time, value, kind in sorted(self._events, key=lambda e: e[0]):
            mask = (t >= prev_t) & (t < time)
            span = time - prev_t
            if kind == "set" or span <= 0:
                out[mask] = prev_v
            elif kind == "linear":
                out[mask] = prev_v + (value - prev_v) * (t[mask] - prev_t) / span
            elif prev_v * value > 0:
                out[mask] = prev_v * (value / prev_v) ** ((t[mask] - prev_t) / span)
            else:
                out[mask] = prev_v
            prev_t, prev_v = time, value
        out[t >= prev_t] = prev_v
        return out


def oscillator(
    waveform: Waveform,
    frequency: float | np.ndarray,
    n: int,
    sample_rate: int,
) -> np.ndarray:
    """Render n samples of a periodic waveform.

    frequency may be a per-sample array (sweeps, FM); phase is accumulated so
    changes stay continuous.
    """
    freq = np.broadcast_to(np.asarray(frequency, dtype=np.float64), (n,))
    cycles = np.concatenate(([0.0], np.cumsum(freq[:-1]))) / sample_rate if n else np.zeros(0)
    phase = 2 * np.pi * cycles
    if waveform == "sine":
        return np.sin(phase)
    if waveform == "square":
        return np.where(np.sin(phase) >= 0, 1.0, -1.0)
    if waveform == "sawtooth":
        return 2.0 * np.mod(cycles + 0.5, 1.0) - 1.0
    if waveform == "triangle":
        return (2 / np.pi) * np.arcsin(np.sin(phase))
    raise ValueError(f"Unknown waveform {waveform!r}")


def white_noise(n: int, rng: np.random.Generator | None = None) -> np.ndarray:
    return (rng or _rng).uniform(-1.0, 1.0, n)


def _biquad_coefficients(
    kind: Literal["bandpass", "lowpass"],
    cutoff: float,
    q: float,
    sample_rate: int,
) -> tuple[np.ndarray, np.ndarray]:
    w0 = 2 * np.pi * cutoff / sample_rate
    alpha = np.sin(w0) / (2 * q)
    cos_w0 = np.cos(w0)
    a = np.array([1 + alpha, -2 * cos_w0, 1 - alpha])
    if kind == "bandpass":
        b = np.array([alpha, 0.0, -alpha])
    elif kind == "lowpass":
        b = np.array([(1 - cos_w0) / 2, 1 - cos_w0, (1 - cos_w0) / 2])
    else:
        raise ValueError(f"Unknown filter {kind!r}")
    return b, a


def biquad(
    samples: np.ndarray,
    kind: Literal["bandpass", "lowpass"],
    cutoff: float,
    sample_rate: int,
    q: float = 1.0,
) -> np.ndarray:
    """Apply a biquad filter's frequency response to the whole buffer.

    Filtering is done in the frequency domain, so it is circular: a buffer
    that loops stays seamless at the loop point.
    """
    n = len(samples)
    if n == 0:
        return samples
    b, a = _biquad_coefficients(kind, cutoff, q, sample_rate)
    w = 2 * np.pi * np.fft.rfftfreq(n)
    z1 = np.exp(-1j * w)
    z2 = z1 * z1
    response = (b[0] + b[1] * z1 + b[2] * z2) / (a[0] + a[1] * z1 + a[2] * z2)
    return np.fft.irfft(np.fft.rfft(samples) * response, n)
