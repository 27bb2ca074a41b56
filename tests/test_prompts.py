import pytest

from drama_high import prompts
from drama_high.models import Relationship


def test_system_instruction_lists_every_cue() -> None:
    text = prompts.system_instruction()
    for cue in prompts.CUE_DESCRIPTIONS:
        assert f"'{cue}'" in text
    assert "'crush'" in text
    assert '"required": ["story_text"' in text


def test_opening_prompt_uses_player_name() -> None:
    assert "named Priya" in prompts.opening_prompt("Priya")


def test_turn_context_fallbacks() -> None:
    text = prompts.turn_context([], "", [], "Go to class")
    assert "[Backpack/Status: None]" in text
    assert "[Current Goal: Unknown]" in text
    assert "No specific relationships yet" in text
    assert 'I chose: "Go to class".' in text


def test_turn_context_not_html_escaped() -> None:
    rel = Relationship(id="m", display_name="Mo & Jo", kind="friend", score=80)
    text = prompts.turn_context(["Mom's car keys"], "Don't get caught", [rel], 'Say "hi"')
    assert "Mom's car keys" in text
    assert "Mo & Jo (friend: 80)" in text
    assert 'I chose: "Say "hi"".' in text


def test_art_prompt_appends_scene() -> None:
    assert prompts.art_prompt("A locker room").endswith("realistic. A locker room")


def test_render_error() -> None:
    with pytest.raises(prompts.PromptError):
        prompts.render_prompt("{{#each items}}unclosed", {})
