"""AudioEngine — maps symbolic cue names to synthesized sound.

Lifecycle is uninitialized → active. The backend is acquired on the first
init() call (which must come from a player action; nothing plays unprompted)
and is never recreated afterwards. Until then every play_cue() is dropped
silently.

Cue categories:
  one-shots   fixed-length buffers, fire and forget, may overlap freely
  ambience    one looping voice at most; switching variants crossfades,
              repeating the current variant is a no-op
  neutral     anything else: fade out the ambience voice and release it

Muting ramps the master gain rather than cutting it, so there is no click.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from .backend import AudioBackend, AudioUnavailableError
from .cues import AMBIENCE_CUES, ONE_SHOTS, ambience
from .mixer import Mixer, Voice

logger = logging.getLogger(__name__)

AMBIENCE_FADE_IN = 2.0
AMBIENCE_FADE_OUT = 1.5
MUTE_TIME_CONSTANT = 0.1


class AudioEngine:
    def __init__(
        self,
        backend_factory: Callable[[], AudioBackend],
        volume: float = 0.3,
    ) -> None:
        self._backend_factory = backend_factory
        self._volume = volume
        self._backend: AudioBackend | None = None
        self._mixer: Mixer | None = None
        self._muted = False
        self._ambience_voice: Voice | None = None
        self._ambience_variant: str | None = None

    @property
    def initialized(self) -> bool:
        return self._mixer is not None

    @property
    def muted(self) -> bool:
        return self._muted

    @property
    def ambience(self) -> str | None:
        """The ambience variant currently playing, if any."""
        return self._ambience_variant

    @property
    def mixer(self) -> Mixer | None:
        return self._mixer

    def init(self) -> None:
        """Acquire the output backend. Safe to call repeatedly."""
        if self._backend is not None:
            return
        backend = self._backend_factory()
        mixer = Mixer(backend.sample_rate, master=0.0 if self._muted else self._volume)
        try:
            backend.start(mixer.render)
        except AudioUnavailableError as e:
            logger.warning("Audio disabled: %s", e)
            return
        self._backend = backend
        self._mixer = mixer

    def resume(self) -> None:
        if self._backend is not None and self._backend.suspended:
            self._backend.resume()

    def toggle_mute(self) -> bool:
        self._muted = not self._muted
        if self._mixer is not None:
            self._mixer.set_master(0.0 if self._muted else self._volume, MUTE_TIME_CONSTANT)
        return self._muted

    def play_cue(self, cue: str) -> None:
        if self._mixer is None:
            logger.debug("Audio not initialised, dropping cue %r", cue)
            return
        self.resume()

        if cue in AMBIENCE_CUES:
            self._start_ambience(AMBIENCE_CUES[cue])
        elif cue in ONE_SHOTS:
            if self._muted:
                return
            buffer = ONE_SHOTS[cue](self._mixer.sample_rate)
            self._mixer.add(Voice(buffer))
        else:
            self._stop_ambience()

    def _start_ambience(self, variant: str) -> None:
        if variant == self._ambience_variant:
            return
        self._stop_ambience()
        spec = ambience(variant, self._mixer.sample_rate)
        voice = self._mixer.add(Voice(spec.loop, loop=True, gain=0.0))
        self._mixer.fade(voice, spec.level, AMBIENCE_FADE_IN)
        self._ambience_voice = voice
        self._ambience_variant = variant
        logger.debug("ambience started variant=%s", variant)

    def _stop_ambience(self) -> None:
        if self._ambience_voice is None:
            return
        self._mixer.fade(self._ambience_voice, 0.0, AMBIENCE_FADE_OUT, release=True)
        logger.debug("ambience stopping variant=%s", self._ambience_variant)
        self._ambience_voice = None
        self._ambience_variant = None

    def close(self) -> None:
        if self._backend is not None:
            self._backend.close()
