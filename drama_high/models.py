"""Core domain models.

The reducer, the session state machine and the save codec all operate on
these types. Pydantic is used for validation and serialisation at every data
boundary. Instances are treated as values: code that changes state builds a
new instance with model_copy() instead of mutating in place.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

RelationshipKind = Literal["friend", "crush", "rival", "enemy", "neutral"]

CueName = Literal[
    "neutral",
    "school_ambience",
    "party_ambience",
    "phone_ping",
    "heartbeat",
    "drama_sting",
    "school_bell",
    "gossip_whisper",
    "success_chime",
]

Role = Literal["player", "narrator"]


class Choice(BaseModel):
    """An option offered to the player. The id is only valid for one turn."""

    id: str
    text: str
    action_summary: str | None = None


class InventoryDelta(BaseModel):
    add: list[str] = Field(default_factory=list)
    remove: list[str] = Field(default_factory=list)


class RelationshipDelta(BaseModel):
    """A partial update for one character, as declared by the generator."""

    id: str
    display_name: str | None = None
    score_change: int | None = None
    new_kind: RelationshipKind | None = None


class TurnUnit(BaseModel):
    """One generated narrative unit. Consumed once by the reducer, never stored."""

    narrative_text: str
    choices: list[Choice] = Field(default_factory=list)
    inventory_delta: InventoryDelta = Field(default_factory=InventoryDelta)
    relationship_deltas: list[RelationshipDelta] = Field(default_factory=list)
    quest: str | None = None
    location: str | None = None
    art_prompt: str = ""
    cue: CueName = "neutral"


class Relationship(BaseModel):
    """A character the player knows, with a 0–100 standing."""

    id: str
    display_name: str
    kind: RelationshipKind = "neutral"
    score: int = Field(default=50, ge=0, le=100)


class TurnLogEntry(BaseModel):
    """One side of an exchange, sent back to the generator as context."""

    role: Role
    text: str


class SceneSnapshot(BaseModel):
    """The last fully-rendered screen: what a reload restores."""

    text: str
    choices: list[Choice] = Field(default_factory=list)
    image: str | None = None


class SessionState(BaseModel):
    """Everything accumulated over one play session."""

    turn_log: list[TurnLogEntry] = Field(default_factory=list)
    inventory: list[str] = Field(default_factory=list)
    relationships: dict[str, Relationship] = Field(default_factory=dict)
    current_quest: str = ""
    current_location: str = ""
    scene_snapshot: SceneSnapshot | None = None
