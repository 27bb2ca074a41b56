"""Decode raw generator payloads into TurnUnit.

The generator is asked for a JSON object matching RESPONSE_SCHEMA, but its
output is not trusted. Everything is checked here so the reducer only ever
sees well-typed data:

  story_text             required, non-empty
  choices                required list; entries without text are dropped
  inventory_updates      {add: [...], remove: [...]}; non-strings dropped
  relationship_updates   [{id, name?, delta?, setType?}]; entries without id dropped
  current_quest          optional
  location_name          optional
  visual_prompt          optional (art is skipped when empty)
  sound_cue              unknown values fall back to "neutral"
"""

from __future__ import annotations

import json
import logging
from typing import Any, get_args

from drama_high.errors import GeneratorError
from drama_high.models import (
    Choice,
    CueName,
    InventoryDelta,
    RelationshipDelta,
    RelationshipKind,
    TurnUnit,
)

logger = logging.getLogger(__name__)

CUE_NAMES: tuple[str, ...] = get_args(CueName)
RELATIONSHIP_KINDS: tuple[str, ...] = get_args(RelationshipKind)

RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "story_text": {"type": "string"},
        "choices": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "text": {"type": "string"},
                    "action_summary": {"type": "string"},
                },
                "required": ["id", "text"],
            },
        },
        "inventory_updates": {
            "type": "object",
            "properties": {
                "add": {"type": "array", "items": {"type": "string"}},
                "remove": {"type": "array", "items": {"type": "string"}},
            },
        },
        "relationship_updates": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "delta": {"type": "number"},
                    "setType": {"type": "string", "enum": list(RELATIONSHIP_KINDS)},
                },
                "required": ["id"],
            },
        },
        "current_quest": {"type": "string"},
        "visual_prompt": {"type": "string"},
        "location_name": {"type": "string"},
        "sound_cue": {"type": "string", "enum": list(CUE_NAMES)},
    },
    "required": ["story_text", "choices", "visual_prompt", "location_name", "sound_cue"],
}


def parse_payload(text: str) -> dict[str, Any]:
    """Parse JSON from generator output, stripping markdown fences."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [line for line in lines[1:] if not line.strip().startswith("```")]
        cleaned = "\n".join(lines)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise GeneratorError(f"Generator returned invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise GeneratorError(
            f"Generator payload must be a JSON object, got {type(data).__name__}"
        )
    return data


def decode_turn_unit(payload: str | dict[str, Any]) -> TurnUnit:
    """Validate a raw payload (JSON text or parsed dict) into a TurnUnit.

    Raises GeneratorError when the payload has no usable narrative.
    """
    data = parse_payload(payload) if isinstance(payload, str) else payload

    story_text = data.get("story_text")
    if not isinstance(story_text, str) or not story_text.strip():
        raise GeneratorError("Generator payload has no story_text")

    raw_choices = data.get("choices")
    if not isinstance(raw_choices, list):
        raise GeneratorError("Generator payload has no choices list")

    cue = data.get("sound_cue")
    if cue not in CUE_NAMES:
        if cue is not None:
            logger.warning("Unknown sound cue %r, using neutral", cue)
        cue = "neutral"

    return TurnUnit(
        narrative_text=story_text,
        choices=_decode_choices(raw_choices),
        inventory_delta=_decode_inventory(data.get("inventory_updates")),
        relationship_deltas=_decode_relationships(data.get("relationship_updates")),
        quest=_optional_str(data.get("current_quest")),
        location=_optional_str(data.get("location_name")),
        art_prompt=_optional_str(data.get("visual_prompt")) or "",
        cue=cue,
    )


def _optional_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _decode_choices(raw: list[Any]) -> list[Choice]:
    choices: list[Choice] = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        text = _optional_str(item.get("text"))
        if text is None:
            continue
        choice_id = item.get("id")
        if isinstance(choice_id, (int, float)):
            choice_id = str(choice_id)
        choices.append(Choice(
            id=_optional_str(choice_id) or str(i + 1),
            text=text,
            action_summary=_optional_str(item.get("action_summary")),
        ))
    return choices


def _decode_names(raw: Any) -> list[str]:
    if not isinstance(raw, list):
        return []
    names: list[str] = []
    for item in raw:
        name = _optional_str(item)
        if name is not None and name not in names:
            names.append(name)
    return names


def _decode_inventory(raw: Any) -> InventoryDelta:
    if not isinstance(raw, dict):
        return InventoryDelta()
    return InventoryDelta(add=_decode_names(raw.get("add")), remove=_decode_names(raw.get("remove")))


def _decode_relationships(raw: Any) -> list[RelationshipDelta]:
    if not isinstance(raw, list):
        return []
    deltas: list[RelationshipDelta] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        char_id = item.get("id")
        if isinstance(char_id, (int, float)):
            char_id = str(char_id)
        char_id = _optional_str(char_id)
        if char_id is None:
            logger.debug("Skipping relationship update without id: %r", item)
            continue

        delta = item.get("delta")
        score_change = None
        if isinstance(delta, (int, float)) and not isinstance(delta, bool):
            score_change = round(delta)

        kind = item.get("setType")
        deltas.append(RelationshipDelta(
            id=char_id,
            display_name=_optional_str(item.get("name")),
            score_change=score_change,
            new_kind=kind if kind in RELATIONSHIP_KINDS else None,
        ))
    return deltas
