"""Generator client — HTTP connection to the text/image generation backend.

The session injects a generator matching the protocol:

    async def request_turn(*, turn_log, inventory, quest, relationships, choice_text) -> TurnUnit
    async def request_insight(narrative_text) -> str
    async def request_art(prompt) -> str | None

choice_text=None asks for the opening turn of a new story. Every call is a
single attempt: failures raise GeneratorError and there is no retry.

Two implementations are provided:

    HttpGenerator  — real HTTP client for OpenAI-compatible backends
                     (chat completions for text, image generations for art).
    EchoGenerator  — builds a placeholder turn from the player's choice. Useful
                     for smoke-testing the session wiring without a model.

Tests use StubGenerator (defined in the test helpers) instead.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from drama_high import prompts
from drama_high.errors import GeneratorError
from drama_high.models import Choice, Relationship, TurnLogEntry, TurnUnit
from drama_high.wire import decode_turn_unit

logger = logging.getLogger(__name__)

__all__ = ["EchoGenerator", "Generator", "GeneratorError", "HttpGenerator"]


# ---------------------------------------------------------------------------
# Protocol: every generator implementation must match these signatures
# ---------------------------------------------------------------------------

class Generator(Protocol):
    async def request_turn(
        self,
        *,
        turn_log: list[TurnLogEntry],
        inventory: list[str],
        quest: str,
        relationships: list[Relationship],
        choice_text: str | None,
    ) -> TurnUnit: ...

    async def request_insight(self, narrative_text: str) -> str: ...

    async def request_art(self, prompt: str) -> str | None: ...


# ---------------------------------------------------------------------------
# HttpGenerator: connects to a real backend
# ---------------------------------------------------------------------------

class HttpGenerator:
    """Async HTTP client for OpenAI-compatible generation backends.

    Endpoints:
      POST /v1/chat/completions   turns (JSON mode) and insights (plain text)
                                  Response: {"choices": [{"message": {"content": "..."}}]}
      POST /v1/images/generations scene art
                                  Response: {"data": [{"b64_json": "..."} | {"url": "..."}]}

    Args:
        provider_url: Base URL of the backend, e.g. "http://localhost:8080".
        api_key:      Bearer token, or empty string if not required.
        story_model:  Model used for turns.
        fast_model:   Model used for insights.
        image_model:  Model used for art.
        timeout:      HTTP timeout in seconds. Defaults to 120.
        player_name:  Protagonist name used in the opening premise.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        story_model: str = "",
        fast_model: str = "",
        image_model: str = "",
        timeout: float = 120.0,
        player_name: str = "Maya",
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._story_model = story_model
        self._fast_model = fast_model or story_model
        self._image_model = image_model
        self._timeout = timeout
        self._player_name = player_name

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise GeneratorError(f"Cannot connect to generator backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise GeneratorError(
                f"Generator backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise GeneratorError(f"Generator backend timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise GeneratorError(f"Generator backend request failed: {e!r}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise GeneratorError("Generator backend returned a non-JSON response") from e
        if not isinstance(data, dict):
            raise GeneratorError("Unexpected response format from generator backend")
        return data

    @staticmethod
    def _message_content(data: dict[str, Any]) -> str:
        choices = data.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            raise GeneratorError("Unexpected response format from chat completions backend")
        message = choices[0].get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise GeneratorError("Unexpected response format from chat completions backend")
        return content

    def _chat_body(self, model: str, messages: list[dict[str, str]], json_mode: bool) -> dict[str, Any]:
        body: dict[str, Any] = {"messages": messages}
        if model:
            body["model"] = model
        if json_mode:
            body["response_format"] = {"type": "json_object"}
        return body

    async def request_turn(
        self,
        *,
        turn_log: list[TurnLogEntry],
        inventory: list[str],
        quest: str,
        relationships: list[Relationship],
        choice_text: str | None,
    ) -> TurnUnit:
        messages = [{"role": "system", "content": prompts.system_instruction()}]
        for entry in turn_log:
            role = "user" if entry.role == "player" else "assistant"
            messages.append({"role": role, "content": entry.text})
        if choice_text is None:
            messages.append({"role": "user", "content": prompts.opening_prompt(self._player_name)})
        else:
            messages.append({
                "role": "user",
                "content": prompts.turn_context(inventory, quest, relationships, choice_text),
            })

        logger.debug("turn request history_len=%d opening=%s", len(turn_log), choice_text is None)
        data = await self._post("/v1/chat/completions", self._chat_body(self._story_model, messages, True))
        content = self._message_content(data)
        if not content.strip():
            raise GeneratorError("No response from generator")
        unit = decode_turn_unit(content)
        logger.debug("turn response choices=%d cue=%s", len(unit.choices), unit.cue)
        return unit

    async def request_insight(self, narrative_text: str) -> str:
        messages = [{"role": "user", "content": prompts.insight_prompt(narrative_text)}]
        data = await self._post("/v1/chat/completions", self._chat_body(self._fast_model, messages, False))
        return self._message_content(data).strip()

    async def request_art(self, prompt: str) -> str | None:
        body: dict[str, Any] = {
            "prompt": prompts.art_prompt(prompt),
            "n": 1,
            "size": "1792x1024",
            "response_format": "b64_json",
        }
        if self._image_model:
            body["model"] = self._image_model
        data = await self._post("/v1/images/generations", body)

        images = data.get("data")
        if not isinstance(images, list) or not images or not isinstance(images[0], dict):
            return None
        if images[0].get("b64_json"):
            return f"data:image/jpeg;base64,{images[0]['b64_json']}"
        return images[0].get("url") or None


# ---------------------------------------------------------------------------
# EchoGenerator: deterministic placeholder turns; no network calls
# ---------------------------------------------------------------------------

class EchoGenerator:
    """Builds a turn out of the player's choice. No network calls.

    Lets you click through the session (state machine, reducer, save/load,
    audio cues) end-to-end without a running model. Art is always absent.
    """

    async def request_turn(
        self,
        *,
        turn_log: list[TurnLogEntry],
        inventory: list[str],
        quest: str,
        relationships: list[Relationship],
        choice_text: str | None,
    ) -> TurnUnit:
        logger.debug("EchoGenerator turn history_len=%d", len(turn_log))
        text = "The alarm rings. Monday again." if choice_text is None else f"You chose: {choice_text}"
        chapter = len(turn_log) // 2 + 1
        return TurnUnit(
            narrative_text=text,
            choices=[
                Choice(id="a", text=f"Keep going (chapter {chapter + 1})"),
                Choice(id="b", text="Check your phone"),
            ],
            location="Hallway",
        )

    async def request_insight(self, narrative_text: str) -> str:
        return narrative_text[:80]

    async def request_art(self, prompt: str) -> str | None:
        return None
