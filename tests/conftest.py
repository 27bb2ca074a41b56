"""Shared test helpers: a scripted generator and session fixtures."""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from drama_high.audio import AudioEngine, OfflineBackend
from drama_high.models import Choice, TurnUnit
from drama_high.session import Session
from drama_high.storage import MemoryBlobStore

TEST_SAMPLE_RATE = 8000


class StubGenerator:
    """Generator that replays queued responses.

    Each queue item is returned as-is, raised if it is an exception, or
    awaited if it is a future (lets a test hold a call in flight).
    An empty art queue answers None.
    """

    def __init__(
        self,
        turns: list[Any] | None = None,
        insights: list[Any] | None = None,
        art: list[Any] | None = None,
    ) -> None:
        self.turns = list(turns or [])
        self.insights = list(insights or [])
        self.art = list(art or [])
        self.turn_calls: list[dict[str, Any]] = []
        self.insight_calls: list[str] = []
        self.art_calls: list[str] = []

    @staticmethod
    async def _resolve(item: Any) -> Any:
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, asyncio.Future):
            return await item
        return item

    async def request_turn(self, **kwargs: Any) -> TurnUnit:
        self.turn_calls.append(kwargs)
        return await self._resolve(self.turns.pop(0))

    async def request_insight(self, narrative_text: str) -> str:
        self.insight_calls.append(narrative_text)
        return await self._resolve(self.insights.pop(0))

    async def request_art(self, prompt: str) -> str | None:
        self.art_calls.append(prompt)
        if not self.art:
            return None
        return await self._resolve(self.art.pop(0))


def make_unit(text: str = "The hallway is buzzing.", choices: tuple[str, ...] = ("a", "b"), **fields: Any) -> TurnUnit:
    return TurnUnit(
        narrative_text=text,
        choices=[Choice(id=c, text=f"Option {c}") for c in choices],
        **fields,
    )


@pytest.fixture
def unit() -> Callable[..., TurnUnit]:
    return make_unit


@pytest.fixture
def audio() -> AudioEngine:
    return AudioEngine(lambda: OfflineBackend(TEST_SAMPLE_RATE))


@pytest.fixture
def store() -> MemoryBlobStore:
    return MemoryBlobStore()


@pytest.fixture
def make_session(audio, store) -> Callable[[StubGenerator], Session]:
    def _make(generator: StubGenerator) -> Session:
        return Session(generator=generator, audio=audio, store=store)
    return _make


@pytest.fixture
def stub_generator() -> type[StubGenerator]:
    return StubGenerator
