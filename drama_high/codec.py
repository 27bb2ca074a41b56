"""Save/load codec for the single save slot.

A blob is one JSON document holding the whole session plus the scene that
was on screen when it was taken, so loading restores the exact view:

    {
      "version": 2,
      "state": { turn_log, inventory, relationships, current_quest, current_location },
      "scene": { text, choices, image } | null
    }

Older blobs are accepted as long as they parse: missing fields default to
empty, and the version 1 layout written by the browser build of the game
(camelCase keys, "history" with parts, relationships as a list) is converted.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from drama_high.errors import SaveLoadError
from drama_high.models import SceneSnapshot, SessionState
from drama_high.reducer import NEW_CHARACTER_SCORE, clamp_score
from drama_high.wire import RELATIONSHIP_KINDS

logger = logging.getLogger(__name__)

SAVE_VERSION = 2

_LEGACY_KEYS = ("history", "sceneSnapshot", "currentQuest", "currentLocation", "storyLog")


def save(state: SessionState, scene: SceneSnapshot | None) -> str:
    """Serialise state and the on-screen scene into one blob."""
    body = state.model_dump(exclude={"scene_snapshot"})
    payload = {
        "version": SAVE_VERSION,
        "state": body,
        "scene": scene.model_dump() if scene is not None else None,
    }
    return json.dumps(payload, indent=2)


def load(blob: str | bytes) -> tuple[SessionState, SceneSnapshot | None]:
    """Parse a blob back into (state, scene). The scene is also set on the state.

    Raises SaveLoadError if the blob cannot be parsed.
    """
    try:
        data = json.loads(blob)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SaveLoadError(f"Save data is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SaveLoadError(f"Save data must be a JSON object, got {type(data).__name__}")

    if "state" not in data and any(k in data for k in _LEGACY_KEYS):
        logger.info("Converting version 1 save layout")
        try:
            data = _from_legacy(data)
        except (AttributeError, KeyError, TypeError) as e:
            raise SaveLoadError(f"Version 1 save data is malformed: {e}") from e

    try:
        raw_state = data.get("state") or {}
        if not isinstance(raw_state, dict):
            raise SaveLoadError("Save data has no session state")
        raw_scene = data.get("scene")
        scene = SceneSnapshot.model_validate(_present(raw_scene)) if raw_scene else None
        state = SessionState.model_validate({**_present(raw_state), "scene_snapshot": scene})
    except ValidationError as e:
        raise SaveLoadError(f"Save data has an invalid shape: {e.error_count()} error(s)") from e
    return state, scene


def _present(fields: Any) -> Any:
    # null fields count as missing and fall back to their defaults
    if not isinstance(fields, dict):
        return fields
    return {k: v for k, v in fields.items() if v is not None}


def _from_legacy(data: dict[str, Any]) -> dict[str, Any]:
    turn_log = []
    for item in data.get("history") or []:
        parts = item.get("parts") or []
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
        turn_log.append({
            "role": "player" if item.get("role") == "user" else "narrator",
            "text": text,
        })

    relationships = {}
    for char in data.get("relationships") or []:
        kind = char.get("relationshipType")
        value = char.get("value")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            score = clamp_score(round(value))
        else:
            score = NEW_CHARACTER_SCORE
        relationships[char["id"]] = {
            "id": char["id"],
            "display_name": char.get("name") or char["id"],
            "kind": kind if kind in RELATIONSHIP_KINDS else "neutral",
            "score": score,
        }

    snapshot = data.get("sceneSnapshot")
    return {
        "version": 1,
        "state": {
            "turn_log": turn_log,
            "inventory": data.get("inventory") or [],
            "relationships": relationships,
            "current_quest": data.get("currentQuest") or "",
            "current_location": data.get("currentLocation") or "",
        },
        "scene": snapshot,
    }
