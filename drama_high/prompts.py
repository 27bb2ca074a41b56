"""Handlebars prompt rendering for generator calls."""

import json
from collections.abc import Callable
from typing import Any

import pybars

from drama_high.models import Relationship
from drama_high.wire import CUE_NAMES, RELATIONSHIP_KINDS, RESPONSE_SCHEMA

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


SYSTEM_INSTRUCTION = """\
You are the Narrator for "Drama High", an infinite interactive novel for a teenage audience.
The setting is a modern high school. The tone is emotional, dramatic, and relatable, like a teen drama TV show.

Your goal is to create a story driven by social dynamics, peer pressure, and consequences.
You must track the player's Backpack Items (inventory), Current Goal (quest), and Relationships with NPCs.

RULES:
1. Format: ALWAYS return a single valid JSON object matching this JSON schema:
{{{schema}}}
2. Consequences: choices must have real effects on later scenes.
3. Inventory: use inventory_updates.add / inventory_updates.remove with item names.
4. Relationships: return relationship_updates when the player interacts with a named character.
   Use "delta" to raise or lower the value (usually -10 to +10, scale 0-100).
   Use "setType" ({{{kinds}}}) when the dynamic changes.
   Introduce a new character by sending an update with both "id" and "name".
5. Current Goal: keep current_quest on the immediate social or academic objective.
6. Visuals: provide a visual_prompt for an image generator describing the scene.
7. Sound Cues: pick one sound_cue that matches the vibe:
{{#each cues}}
   - '{{{name}}}': {{{description}}}
{{/each}}
8. Tone: modern teen slang where it fits, but keep it readable.

Your output will be parsed programmatically.
"""

OPENING_PROMPT = """\
Start the story. I am a 13-year-old girl named {{{player_name}}}. It's Monday morning, the alarm is ringing, \
and I have a big history test today that I barely studied for because I was texting my crush last night. \
What happens?"""

TURN_CONTEXT = """\
[Backpack/Status: {{#if inventory}}{{{inventory}}}{{else}}None{{/if}}]
[Current Goal: {{#if quest}}{{{quest}}}{{else}}Unknown{{/if}}]
[Relationships: {{#if relationships}}{{{relationships}}}{{else}}No specific relationships yet{{/if}}]

I chose: "{{{choice}}}".
Continue the story. Remember consequences and social dynamics!"""

INSIGHT_PROMPT = """\
Context: {{{narrative}}}
Task: Provide a "Vibe Check". What is the social atmosphere? Is someone lying? \
Is the main character forgetting something?
Output plain text, max 1 sentence."""

ART_PROMPT = """\
Digital art, visual novel background, webtoon style, soft lighting, modern high school setting, \
highly detailed, anime-influenced but realistic. {{{prompt}}}"""

CUE_DESCRIPTIONS: dict[str, str] = {
    "neutral": "normal conversation",
    "school_ambience": "hallways, cafeteria, classrooms",
    "party_ambience": "music, crowded places",
    "phone_ping": "receiving a text, notification, social media update",
    "heartbeat": "crushes, anxiety, getting caught doing something",
    "drama_sting": "shocking revelation, bad news, confrontation",
    "school_bell": "class starting or ending",
    "gossip_whisper": "hearing rumors, secrets revealed",
    "success_chime": "acing a test, getting asked out",
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


def system_instruction() -> str:
    return render_prompt(SYSTEM_INSTRUCTION, {
        "schema": json.dumps(RESPONSE_SCHEMA),
        "kinds": ", ".join(f"'{k}'" for k in RELATIONSHIP_KINDS),
        "cues": [{"name": c, "description": CUE_DESCRIPTIONS[c]} for c in CUE_NAMES],
    })


def opening_prompt(player_name: str = "Maya") -> str:
    return render_prompt(OPENING_PROMPT, {"player_name": player_name})


def turn_context(
    inventory: list[str],
    quest: str,
    relationships: list[Relationship],
    choice_text: str,
) -> str:
    """The per-turn user message: current status plus the player's choice."""
    summary = ", ".join(f"{r.display_name} ({r.kind}: {r.score})" for r in relationships)
    return render_prompt(TURN_CONTEXT, {
        "inventory": ", ".join(inventory),
        "quest": quest,
        "relationships": summary,
        "choice": choice_text,
    })


def insight_prompt(narrative_text: str) -> str:
    return render_prompt(INSIGHT_PROMPT, {"narrative": narrative_text})


def art_prompt(prompt: str) -> str:
    return render_prompt(ART_PROMPT, {"prompt": prompt})
