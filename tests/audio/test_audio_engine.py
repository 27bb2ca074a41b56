"""AudioEngine cue routing, ambience crossfades and mute."""

import numpy as np
import pytest

from drama_high.audio import AudioEngine, AudioUnavailableError, OfflineBackend
from drama_high.audio.engine import AMBIENCE_FADE_IN, AMBIENCE_FADE_OUT

SR = 8000


class _BrokenBackend(OfflineBackend):
    def start(self, render) -> None:
        raise AudioUnavailableError("no device")


@pytest.fixture
def backends() -> list[OfflineBackend]:
    return []


@pytest.fixture
def engine(backends) -> AudioEngine:
    def factory() -> OfflineBackend:
        backend = OfflineBackend(SR, start_suspended=True)
        backends.append(backend)
        return backend
    return AudioEngine(factory, volume=0.3)


def _ambience_voices(engine: AudioEngine) -> list:
    return [v for v in engine.mixer.voices if v.loop]


class TestLifecycle:
    def test_cues_dropped_before_init(self, engine, backends) -> None:
        engine.play_cue("drama_sting")
        engine.play_cue("school_ambience")
        assert not engine.initialized
        assert engine.ambience is None
        assert backends == []

    def test_init_is_idempotent(self, engine, backends) -> None:
        engine.init()
        mixer = engine.mixer
        engine.init()
        assert len(backends) == 1
        assert engine.mixer is mixer

    def test_cue_resumes_suspended_backend(self, engine, backends) -> None:
        engine.init()
        assert backends[0].suspended
        engine.play_cue("phone_ping")
        assert not backends[0].suspended
        assert backends[0].resume_calls == 1
        engine.play_cue("phone_ping")
        assert backends[0].resume_calls == 1

    def test_unavailable_device_leaves_engine_silent(self) -> None:
        engine = AudioEngine(lambda: _BrokenBackend(SR))
        engine.init()
        assert not engine.initialized
        engine.play_cue("heartbeat")


class TestOneShots:
    def test_one_shots_overlap(self, engine) -> None:
        engine.init()
        engine.play_cue("heartbeat")
        engine.play_cue("drama_sting")
        assert len(engine.mixer.voices) == 2

    def test_one_shot_plays_out(self, engine, backends) -> None:
        engine.init()
        engine.play_cue("phone_ping")
        out = backends[0].pull_seconds(0.6)
        assert np.max(np.abs(out)) > 0
        assert engine.mixer.voices == []

    def test_one_shot_does_not_touch_ambience(self, engine) -> None:
        engine.init()
        engine.play_cue("party_ambience")
        engine.play_cue("school_bell")
        assert engine.ambience == "party"


class TestAmbience:
    def test_start_fades_in(self, engine, backends) -> None:
        engine.init()
        engine.play_cue("school_ambience")
        voice = _ambience_voices(engine)[0]
        assert voice.gain == 0.0
        backends[0].pull_seconds(AMBIENCE_FADE_IN)
        assert voice.gain == pytest.approx(0.03)

    def test_same_variant_is_noop(self, engine) -> None:
        engine.init()
        engine.play_cue("school_ambience")
        engine.play_cue("school_ambience")
        assert len(_ambience_voices(engine)) == 1

    def test_switch_crossfades(self, engine, backends) -> None:
        engine.init()
        engine.play_cue("school_ambience")
        backends[0].pull_seconds(AMBIENCE_FADE_IN)
        engine.play_cue("party_ambience")

        assert engine.ambience == "party"
        old, new = _ambience_voices(engine)
        assert old.releasing
        assert not new.releasing

        backends[0].pull_seconds(AMBIENCE_FADE_OUT + 0.01)
        assert _ambience_voices(engine) == [new]

    def test_never_two_ambiences_after_fade(self, engine, backends) -> None:
        engine.init()
        for cue in ["school_ambience", "party_ambience", "school_ambience", "party_ambience"]:
            engine.play_cue(cue)
        backends[0].pull_seconds(AMBIENCE_FADE_OUT + 0.01)
        remaining = [v for v in _ambience_voices(engine) if not v.releasing]
        assert len(remaining) == 1
        assert len(_ambience_voices(engine)) == 1

    @pytest.mark.parametrize("cue", ["neutral", "something_new"])
    def test_other_cues_stop_ambience(self, engine, backends, cue) -> None:
        engine.init()
        engine.play_cue("party_ambience")
        engine.play_cue(cue)
        assert engine.ambience is None
        backends[0].pull_seconds(AMBIENCE_FADE_OUT + 0.01)
        assert engine.mixer.voices == []

    def test_neutral_without_ambience_is_noop(self, engine) -> None:
        engine.init()
        engine.play_cue("neutral")
        assert engine.mixer.voices == []


class TestMute:
    def test_mute_ramps_master(self, engine, backends) -> None:
        engine.init()
        assert engine.toggle_mute() is True
        assert engine.mixer.master_target == 0.0
        backends[0].resume()
        backends[0].pull_seconds(1.0)
        assert engine.mixer.master < 1e-3

    def test_unmute_restores_volume(self, engine) -> None:
        engine.init()
        engine.toggle_mute()
        assert engine.toggle_mute() is False
        assert engine.mixer.master_target == pytest.approx(0.3)

    def test_muted_one_shots_skipped(self, engine) -> None:
        engine.init()
        engine.toggle_mute()
        engine.play_cue("drama_sting")
        assert engine.mixer.voices == []

    def test_mute_before_init_starts_silent(self, engine) -> None:
        assert engine.toggle_mute() is True
        engine.init()
        assert engine.mixer.master == 0.0
