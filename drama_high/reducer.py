"""Delta-merge reducer: fold one TurnUnit into the accumulated SessionState.

merge() is pure and total. Incomplete or repeated data from the generator is
never an error here; it degrades to a no-op:

  - adding an item already held, or removing one not held, changes nothing
  - a relationship delta for an unknown id without a name is dropped
  - an empty quest/location leaves the previous value in place

The turn log and the scene snapshot belong to the session state machine and
are left alone.
"""

from __future__ import annotations

import logging

from drama_high.models import (
    InventoryDelta,
    Relationship,
    RelationshipDelta,
    SessionState,
    TurnUnit,
)

logger = logging.getLogger(__name__)

SCORE_MIN = 0
SCORE_MAX = 100
NEW_CHARACTER_SCORE = 50


def clamp_score(value: int) -> int:
    return max(SCORE_MIN, min(SCORE_MAX, value))


def merge(state: SessionState, unit: TurnUnit) -> SessionState:
    """Return a new state with the unit's deltas applied."""
    return state.model_copy(update={
        "inventory": _merge_inventory(state.inventory, unit.inventory_delta),
        "relationships": _merge_relationships(state.relationships, unit.relationship_deltas),
        "current_quest": unit.quest or state.current_quest,
        "current_location": unit.location or state.current_location,
    })


def _merge_inventory(inventory: list[str], delta: InventoryDelta) -> list[str]:
    items = list(inventory)
    for name in delta.add:
        if name not in items:
            items.append(name)
    for name in delta.remove:
        if name in items:
            items.remove(name)
    return items


def _merge_relationships(
    relationships: dict[str, Relationship],
    deltas: list[RelationshipDelta],
) -> dict[str, Relationship]:
    merged = dict(relationships)
    # Sequential: a second delta for the same id sees the result of the first.
    for delta in deltas:
        change = delta.score_change or 0
        existing = merged.get(delta.id)
        if existing is not None:
            merged[delta.id] = existing.model_copy(update={
                "display_name": delta.display_name or existing.display_name,
                "kind": delta.new_kind or existing.kind,
                "score": clamp_score(existing.score + change),
            })
        elif delta.display_name:
            merged[delta.id] = Relationship(
                id=delta.id,
                display_name=delta.display_name,
                kind=delta.new_kind or "neutral",
                score=clamp_score(NEW_CHARACTER_SCORE + change),
            )
        else:
            logger.debug("Dropping relationship delta for unknown id %r without a name", delta.id)
    return merged
