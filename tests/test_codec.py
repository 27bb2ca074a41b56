"""Tests for drama_high.codec — save/load blobs."""

import json

import pytest

from drama_high.codec import SAVE_VERSION, load, save
from drama_high.errors import SaveLoadError
from drama_high.models import (
    Choice,
    Relationship,
    SceneSnapshot,
    SessionState,
    TurnLogEntry,
)


@pytest.fixture
def scene() -> SceneSnapshot:
    return SceneSnapshot(
        text="Jess is staring at you from across the cafeteria.",
        choices=[Choice(id="1", text="Wave"), Choice(id="2", text="Look away")],
        image="data:image/jpeg;base64,QUJD",
    )


@pytest.fixture
def state(scene) -> SessionState:
    return SessionState(
        turn_log=[
            TurnLogEntry(role="narrator", text="Monday."),
            TurnLogEntry(role="player", text="Get up"),
            TurnLogEntry(role="narrator", text="Jess is staring at you."),
        ],
        inventory=["Smartphone", "Lip Gloss"],
        relationships={
            "jess": Relationship(id="jess", display_name="Jess", kind="rival", score=22),
        },
        current_quest="Avoid Jess",
        current_location="Cafeteria",
        scene_snapshot=scene,
    )


class TestSave:
    def test_blob_layout(self, state, scene) -> None:
        data = json.loads(save(state, scene))
        assert data["version"] == SAVE_VERSION
        assert "scene_snapshot" not in data["state"]
        assert data["state"]["current_quest"] == "Avoid Jess"
        assert data["scene"]["image"] == scene.image

    def test_without_scene(self) -> None:
        data = json.loads(save(SessionState(), None))
        assert data["scene"] is None


class TestLoad:
    def test_restores_state_and_scene(self, state, scene) -> None:
        loaded_state, loaded_scene = load(save(state, scene))
        assert loaded_scene == scene
        assert loaded_state == state
        assert loaded_state.scene_snapshot == scene

    def test_accepts_bytes(self, state, scene) -> None:
        _, loaded_scene = load(save(state, scene).encode())
        assert loaded_scene == scene

    def test_missing_fields_default_to_empty(self) -> None:
        blob = json.dumps({"version": 2, "state": {"inventory": ["Gum"]}, "scene": None})
        loaded, scene = load(blob)
        assert loaded.inventory == ["Gum"]
        assert loaded.relationships == {}
        assert loaded.turn_log == []
        assert loaded.current_quest == ""
        assert scene is None

    def test_missing_state_key(self) -> None:
        loaded, scene = load(json.dumps({"version": 2}))
        assert loaded == SessionState()
        assert scene is None

    @pytest.mark.parametrize("blob", [
        "{not json",
        "",
        "[1, 2, 3]",
        '"just a string"',
    ])
    def test_corrupt_blob(self, blob) -> None:
        with pytest.raises(SaveLoadError):
            load(blob)

    def test_state_of_wrong_type(self) -> None:
        with pytest.raises(SaveLoadError):
            load(json.dumps({"version": 2, "state": ["nope"]}))

    def test_invalid_shape(self) -> None:
        blob = json.dumps({"version": 2, "state": {"relationships": {
            "jo": {"id": "jo", "display_name": "Jo", "score": 400},
        }}})
        with pytest.raises(SaveLoadError, match="invalid shape"):
            load(blob)


class TestLegacyLayout:
    LEGACY = {
        "history": [
            {"role": "user", "parts": [{"text": "Start the story."}]},
            {"role": "model", "parts": [{"text": "{\"story_text\": \"...\"}"}]},
        ],
        "inventory": ["Smartphone"],
        "relationships": [
            {"id": "kyle", "name": "Kyle", "relationshipType": "crush", "value": 65},
            {"id": "jess"},
        ],
        "currentQuest": "Pass the test",
        "currentLocation": "Bedroom",
        "sceneSnapshot": {
            "text": "Your alarm is ringing.",
            "choices": [{"id": "1", "text": "Snooze"}],
            "image": None,
        },
    }

    def test_converts_version_1(self) -> None:
        loaded, scene = load(json.dumps(self.LEGACY))
        assert [e.role for e in loaded.turn_log] == ["player", "narrator"]
        assert loaded.turn_log[0].text == "Start the story."
        assert loaded.inventory == ["Smartphone"]
        assert loaded.relationships["kyle"] == Relationship(
            id="kyle", display_name="Kyle", kind="crush", score=65,
        )
        assert loaded.relationships["jess"].display_name == "jess"
        assert loaded.relationships["jess"].score == 50
        assert loaded.current_quest == "Pass the test"
        assert loaded.current_location == "Bedroom"
        assert scene is not None and scene.text == "Your alarm is ringing."

    def test_malformed_version_1(self) -> None:
        with pytest.raises(SaveLoadError):
            load(json.dumps({"currentQuest": "x", "relationships": [{"name": "No id"}]}))


class TestNullFields:
    def test_null_state_fields_default(self) -> None:
        blob = json.dumps({
            "version": 2,
            "state": {"inventory": ["Phone"], "relationships": None, "current_quest": None},
            "scene": {"text": "Lunch.", "choices": None, "image": None},
        })
        loaded, scene = load(blob)
        assert loaded.inventory == ["Phone"]
        assert loaded.relationships == {}
        assert loaded.current_quest == ""
        assert scene == SceneSnapshot(text="Lunch.")

    def test_legacy_unknown_kind_and_out_of_range_value(self) -> None:
        blob = json.dumps({
            "currentQuest": "Find Mia",
            "relationships": [
                {"id": "mia", "name": "Mia", "relationshipType": "bestie", "value": 140},
                {"id": "tom", "name": "Tom", "relationshipType": "rival", "value": -20},
                {"id": "ana", "name": "Ana", "value": None},
            ],
        })
        loaded, _ = load(blob)
        assert loaded.relationships["mia"] == Relationship(id="mia", display_name="Mia", kind="neutral", score=100)
        assert loaded.relationships["tom"].score == 0
        assert loaded.relationships["tom"].kind == "rival"
        assert loaded.relationships["ana"].score == 50
