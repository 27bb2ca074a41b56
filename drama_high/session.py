"""Session state machine — runs the play loop for one story.

Phases:

    IDLE ──start()──▶ AWAITING_TURN ──▶ RENDERING ──▶ AWAITING_CHOICE
                          ▲                                 │
                          └──────────choose(id)─────────────┘

Turn flow (choose):
  1. Reject while a turn is in flight, or if the choice is not on screen.
  2. Ask the generator for the next TurnUnit with the turn log, inventory,
     quest and relationships as context.
  3. On success: append the player/narrator pair to the turn log, run the
     reducer, replace the scene snapshot (text + choices, previous image kept
     until new art arrives), fire the audio cue, start the art request in the
     background and settle in AWAITING_CHOICE.
  4. On failure: show TURN_FAILED_MESSAGE and return to AWAITING_CHOICE with
     the session state exactly as it was. The reducer never runs.

Background work:
  - Art requests are numbered; only the latest one may write the scene
    image. Older results are dropped when they arrive.
  - The insight query is independent of the main phases: at most one at a
    time, only from AWAITING_CHOICE, never reads or writes SessionState.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from pydantic import BaseModel, Field

from drama_high import codec
from drama_high.audio import AudioEngine
from drama_high.errors import (
    GeneratorError,
    NoSaveError,
    SessionBusyError,
    UnknownChoiceError,
)
from drama_high.generator import Generator
from drama_high.models import (
    Choice,
    Relationship,
    SceneSnapshot,
    SessionState,
    TurnLogEntry,
    TurnUnit,
)
from drama_high.reducer import merge
from drama_high.storage import SAVE_SLOT, BlobStore

logger = logging.getLogger(__name__)

TURN_FAILED_MESSAGE = "The connection is bad... (API Error). Check your signal (API Key)."
INSIGHT_FAILED_TEXT = "Too distracted to notice."
INSIGHT_EMPTY_TEXT = "You can't quite read the room."


class Phase(str, Enum):
    IDLE = "idle"
    AWAITING_TURN = "awaiting_turn"
    RENDERING = "rendering"
    AWAITING_CHOICE = "awaiting_choice"


class SessionView(BaseModel):
    """Everything the presentation layer renders."""

    phase: Phase
    text: str = ""
    choices: list[Choice] = Field(default_factory=list)
    image: str | None = None
    turn_in_flight: bool = False
    image_loading: bool = False
    insight_text: str | None = None
    insight_loading: bool = False
    muted: bool = False
    error: str | None = None
    inventory: list[str] = Field(default_factory=list)
    relationships: list[Relationship] = Field(default_factory=list)
    quest: str = ""
    location: str = ""
    chapters_played: int = 0


class Session:
    def __init__(
        self,
        generator: Generator,
        audio: AudioEngine,
        store: BlobStore,
        slot: str = SAVE_SLOT,
    ) -> None:
        self._generator = generator
        self._audio = audio
        self._store = store
        self._slot = slot

        self.state = SessionState()
        self.phase = Phase.IDLE
        self.error: str | None = None
        self.image_loading = False
        self.insight_text: str | None = None
        self.insight_pending = False

        self._art_generation = 0
        self._scene_generation = 0
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def scene(self) -> SceneSnapshot | None:
        return self.state.scene_snapshot

    @property
    def turn_in_flight(self) -> bool:
        return self.phase is Phase.AWAITING_TURN

    def view(self) -> SessionView:
        scene = self.scene
        return SessionView(
            phase=self.phase,
            text=scene.text if scene else "",
            choices=list(scene.choices) if scene else [],
            image=scene.image if scene else None,
            turn_in_flight=self.turn_in_flight,
            image_loading=self.image_loading,
            insight_text=self.insight_text,
            insight_loading=self.insight_pending,
            muted=self._audio.muted,
            error=self.error,
            inventory=list(self.state.inventory),
            relationships=list(self.state.relationships.values()),
            quest=self.state.current_quest,
            location=self.state.current_location,
            chapters_played=sum(1 for e in self.state.turn_log if e.role == "player"),
        )

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Request the opening turn of a new story."""
        if self.phase is not Phase.IDLE:
            raise SessionBusyError("The story has already started")
        self.error = None
        unit = await self._request_turn(choice_text=None, on_failure=Phase.IDLE)
        if unit is not None:
            self._integrate(unit, choice_text=None)

    async def choose(self, choice_id: str) -> None:
        """Handle the player picking one of the choices on screen."""
        if self.phase is Phase.AWAITING_TURN:
            raise SessionBusyError("A turn is already in flight")
        scene = self.scene
        choice = next((c for c in scene.choices if c.id == choice_id), None) if scene else None
        if choice is None:
            raise UnknownChoiceError(f"No choice {choice_id!r} in the current scene")

        self._audio.init()
        self._audio.resume()
        self.insight_text = None
        self.error = None

        unit = await self._request_turn(choice_text=choice.text, on_failure=Phase.AWAITING_CHOICE)
        if unit is not None:
            self._integrate(unit, choice_text=choice.text)

    async def _request_turn(self, choice_text: str | None, on_failure: Phase) -> TurnUnit | None:
        before = self.state
        self.phase = Phase.AWAITING_TURN
        try:
            unit = await self._generator.request_turn(
                turn_log=list(before.turn_log),
                inventory=list(before.inventory),
                quest=before.current_quest,
                relationships=list(before.relationships.values()),
                choice_text=choice_text,
            )
        except GeneratorError as e:
            logger.warning("Turn request failed: %s", e)
            self.error = TURN_FAILED_MESSAGE
            self.phase = on_failure
            return None
        except BaseException:
            self.phase = on_failure
            raise
        return unit

    def _integrate(self, unit: TurnUnit, choice_text: str | None) -> None:
        self.phase = Phase.RENDERING

        turn_log = list(self.state.turn_log)
        if choice_text is not None:
            turn_log.append(TurnLogEntry(role="player", text=choice_text))
        turn_log.append(TurnLogEntry(role="narrator", text=unit.narrative_text))

        previous = self.scene
        scene = SceneSnapshot(
            text=unit.narrative_text,
            choices=unit.choices,
            image=previous.image if previous else None,
        )
        merged = merge(self.state.model_copy(update={"turn_log": turn_log}), unit)
        self.state = merged.model_copy(update={"scene_snapshot": scene})
        self._scene_generation += 1
        logger.debug(
            "turn integrated log_len=%d inventory=%d relationships=%d",
            len(turn_log), len(self.state.inventory), len(self.state.relationships),
        )

        self._audio.play_cue(unit.cue)
        self._start_art(unit.art_prompt)
        self.phase = Phase.AWAITING_CHOICE

    # ------------------------------------------------------------------
    # Art
    # ------------------------------------------------------------------

    def _start_art(self, prompt: str) -> None:
        self._art_generation += 1
        if not prompt:
            self._set_image(None)
            self.image_loading = False
            return
        self.image_loading = True
        task = asyncio.create_task(self._fetch_art(prompt, self._art_generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _fetch_art(self, prompt: str, generation: int) -> None:
        try:
            image = await self._generator.request_art(prompt)
        except GeneratorError as e:
            logger.warning("Scene art failed: %s", e)
            image = None
        except Exception:
            logger.exception("Scene art request raised unexpectedly")
            image = None
        if generation != self._art_generation:
            logger.debug("Discarding stale art generation=%d latest=%d", generation, self._art_generation)
            return
        self._set_image(image)
        self.image_loading = False

    def _set_image(self, image: str | None) -> None:
        scene = self.scene
        if scene is None:
            return
        self.state = self.state.model_copy(
            update={"scene_snapshot": scene.model_copy(update={"image": image})}
        )

    async def wait_for_background(self) -> None:
        """Wait until every outstanding art request has resolved."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        try:
            await self.wait_for_background()
        finally:
            self._audio.close()

    # ------------------------------------------------------------------
    # Insight
    # ------------------------------------------------------------------

    async def request_insight(self) -> str | None:
        """Ask for a one-line read of the current scene.

        Returns the text shown, or None if the scene changed before the
        answer arrived (the answer is then dropped).
        """
        if self.phase is not Phase.AWAITING_CHOICE or self.insight_pending or self.scene is None:
            raise SessionBusyError("Insight is not available right now")
        self.insight_pending = True
        self._audio.play_cue("phone_ping")
        scene_generation = self._scene_generation
        try:
            text = (await self._generator.request_insight(self.scene.text)).strip()
            text = text or INSIGHT_EMPTY_TEXT
        except GeneratorError as e:
            logger.warning("Insight request failed: %s", e)
            text = INSIGHT_FAILED_TEXT
        finally:
            self.insight_pending = False

        if scene_generation != self._scene_generation:
            logger.debug("Discarding insight for a scene no longer on screen")
            return None
        self.insight_text = text
        return text

    # ------------------------------------------------------------------
    # Save / load / audio
    # ------------------------------------------------------------------

    def save(self) -> None:
        blob = codec.save(self.state, self.scene)
        self._store.put(self._slot, blob)
        self._audio.play_cue("phone_ping")
        logger.info("Session saved to slot %r", self._slot)

    def load(self) -> None:
        """Restore the saved session and screen.

        Raises NoSaveError if the slot is empty, SaveLoadError if it cannot be
        parsed; the live session is untouched in both cases.
        """
        if self.phase is Phase.AWAITING_TURN:
            raise SessionBusyError("Cannot load while a turn is in flight")
        blob = self._store.get(self._slot)
        if blob is None:
            raise NoSaveError("No saved game found.")
        state, scene = codec.load(blob)

        self.state = state
        self._art_generation += 1
        self._scene_generation += 1
        self.image_loading = False
        self.insight_text = None
        self.error = None
        self.phase = Phase.AWAITING_CHOICE if scene is not None else Phase.IDLE
        logger.info("Session loaded from slot %r", self._slot)

        self._audio.init()
        self._audio.resume()
        self._audio.play_cue("success_chime")

    def toggle_mute(self) -> bool:
        self._audio.init()
        self._audio.resume()
        return self._audio.toggle_mute()
