"""Cue recipes.

One-shot cues render to a finished sample buffer with a fixed length.
Ambience variants render a two-second noise loop plus the level it should
fade up to. Cue names outside both tables mean "neutral" (stop ambience).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np

from .synth import Envelope, biquad, frames, oscillator, white_noise


def phone_ping(sample_rate: int) -> np.ndarray:
    n = frames(0.5, sample_rate)
    freq = Envelope(800.0).set(800.0, 0.0).exponential(1200.0, 0.1).render(n, sample_rate)
    gain = Envelope().set(0.0, 0.0).linear(0.2, 0.05).exponential(0.001, 0.5)
    return oscillator("sine", freq, n, sample_rate) * gain.render(n, sample_rate)


def school_bell(sample_rate: int) -> np.ndarray:
    n = frames(1.5, sample_rate)
    # 15 Hz square wave on the pitch gives the rattle.
    rattle = oscillator("square", 15.0, n, sample_rate) * 200.0
    tone = oscillator("triangle", 600.0 + rattle, n, sample_rate)
    gain = Envelope().set(0.0, 0.0).linear(0.15, 0.1).linear(0.15, 1.0).linear(0.0, 1.5)
    return tone * gain.render(n, sample_rate)


def heartbeat(sample_rate: int) -> np.ndarray:
    n = frames(0.7, sample_rate)
    gain = (
        Envelope()
        .set(0.0, 0.0).linear(0.5, 0.05).exponential(0.001, 0.2)
        .set(0.0, 0.3).linear(0.4, 0.35).exponential(0.001, 0.6)
    )
    return oscillator("sine", 50.0, n, sample_rate) * gain.render(n, sample_rate)


def drama_sting(sample_rate: int) -> np.ndarray:
    n = frames(1.5, sample_rate)
    freq = Envelope(100.0).set(100.0, 0.0).exponential(50.0, 1.0).render(n, sample_rate)
    gain = Envelope(0.3).set(0.3, 0.0).exponential(0.001, 1.5)
    return oscillator("sawtooth", freq, n, sample_rate) * gain.render(n, sample_rate)


def success_chime(sample_rate: int) -> np.ndarray:
    n = frames(2.0, sample_rate)
    out = np.zeros(n)
    # C major arpeggio, each note entering 100 ms after the last.
    for i, freq in enumerate((523.25, 659.25, 783.99)):
        start = i * 0.1
        gain = Envelope().set(0.0, start).linear(0.1, start + 0.1).linear(0.0, start + 0.8)
        out += oscillator("sine", freq, n, sample_rate) * gain.render(n, sample_rate)
    return out


def gossip_whisper(sample_rate: int) -> np.ndarray:
    n = frames(1.5, sample_rate)
    hiss = biquad(white_noise(n), "bandpass", 800.0, sample_rate)
    gain = Envelope().set(0.0, 0.0).linear(0.1, 0.5).linear(0.0, 1.5)
    return hiss * gain.render(n, sample_rate)


ONE_SHOTS: dict[str, Callable[[int], np.ndarray]] = {
    "phone_ping": phone_ping,
    "school_bell": school_bell,
    "heartbeat": heartbeat,
    "drama_sting": drama_sting,
    "success_chime": success_chime,
    "gossip_whisper": gossip_whisper,
}


@dataclass(frozen=True)
class Ambience:
    variant: str
    loop: np.ndarray
    level: float


AMBIENCE_CUES: dict[str, str] = {
    "school_ambience": "school",
    "party_ambience": "party",
}

AMBIENCE_LOOP_SECONDS = 2.0


def ambience(variant: str, sample_rate: int) -> Ambience:
    noise = white_noise(frames(AMBIENCE_LOOP_SECONDS, sample_rate))
    if variant == "school":
        # Distant hallway chatter.
        return Ambience(variant, biquad(noise, "bandpass", 500.0, sample_rate, q=1.0), 0.03)
    if variant == "party":
        # Bass through the wall.
        return Ambience(variant, biquad(noise, "lowpass", 150.0, sample_rate, q=0.7071), 0.1)
    raise ValueError(f"Unknown ambience variant {variant!r}")
