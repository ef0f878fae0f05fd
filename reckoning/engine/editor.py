"""DM editorial engine: one generation/review cycle per game.

Editor status moves idle -> generating -> editing -> idle:

    generate_next   idle only. Calls the provider; the result becomes pending
                    content and the status becomes "editing" (awaiting the DM).
    ACCEPT          commits the edited text if any, else the pending text.
    EDIT            stores edited text, keeps pending content, commits nothing.
    REGENERATE      any status. Drops pending content and generates again; a
                    generation still in flight is superseded.
    INJECT          commits DM-written text directly, leaving pending alone.

Every commit advances the game's turn by one. In auto playback an ACCEPT or
INJECT is followed by exactly one generate_next.

Each game has its own asyncio.Lock. Every editor-state change and every
commit happens under it. The provider call runs outside the lock, tagged
with the game's epoch at the time it started; a REGENERATE bumps the epoch,
so when a superseded call finally returns its result is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from reckoning.broadcast import Broadcaster, GenerationComplete, GenerationError, GenerationStarted
from reckoning.llm import AIError, AIProvider
from reckoning.models import (
    AcceptAction,
    Area,
    CanonicalEvent,
    Character,
    DMAction,
    DMEditorState,
    EditAction,
    EventType,
    Game,
    GeneratedContent,
    GenerationType,
    InjectAction,
    PlaybackMode,
    RegenerateAction,
    Scene,
    new_id,
)
from reckoning.storage import Storage

from .errors import EditorStateError, NoContentError
from .pipeline import ContentPipeline
from .playback import PlaybackController
from .scenes import SceneManager
from .state import EventSink, StateManager

logger = logging.getLogger(__name__)


@dataclass
class _Session:
    """Per-game engine state that is never persisted."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    epoch: int = 0
    pending: GeneratedContent | None = None
    generation_type: GenerationType = "narration"


class GameEngine:
    """Mediates between the provider, the DM's actions, storage and viewers.

    Args:
        storage:            Repositories for games, events and world records.
        provider:           Anything matching the AIProvider protocol.
        broadcaster:        Receives every state delta.
        generation_timeout: Seconds before a provider call is reported as a
                            TIMEOUT failure.
        recent_history:     Number of recent events fed into prompts.
        event_sink:         Called with every committed event (the evolution
                            worker's queue).
    """

    def __init__(
        self,
        storage: Storage,
        provider: AIProvider,
        broadcaster: Broadcaster,
        generation_timeout: float = 60.0,
        recent_history: int = 10,
        event_sink: EventSink | None = None,
    ) -> None:
        self._storage = storage
        self._broadcaster = broadcaster
        self._timeout = generation_timeout
        self.pipeline = ContentPipeline(storage, provider, recent_history=recent_history)
        self.state = StateManager(storage, broadcaster, event_sink=event_sink)
        self.playback = PlaybackController(storage.games)
        self.scenes = SceneManager(storage)
        self._sessions: dict[str, _Session] = {}

    def _session(self, game_id: str) -> _Session:
        session = self._sessions.get(game_id)
        if session is None:
            session = self._sessions[game_id] = _Session()
        return session

    # ------------------------------------------------------------------
    # Game lifecycle
    # ------------------------------------------------------------------

    def start_game(
        self,
        player_name: str,
        player_description: str | None = None,
        area: Area | None = None,
    ) -> Game:
        """Create a paused game with a starting area and the player's character."""
        area = area or Area(
            name="The Crossroads Inn",
            description="A weathered inn where four roads meet, busy with travellers and rumours.",
            tags=["inn", "town"],
        )
        game = self._storage.games.create(current_area_id=area.id, mode="paused")
        self._storage.world.save_area(game.id, area)
        player = self._storage.world.save_character(game.id, Character(
            name=player_name,
            description=player_description or "The adventurer",
            role="player",
            stats={"health": 100, "max_health": 100},
        ))
        game = self._storage.games.update(game.id, {"player_id": player.id})
        logger.info("Started game %s for %s", game.id, player_name)
        return game

    def get_game(self, game_id: str) -> Game:
        return self.state.require_game(game_id)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_next(
        self,
        game_id: str,
        generation_type: GenerationType = "narration",
        guidance: str | None = None,
    ) -> GeneratedContent | None:
        """Request the next proposal. Valid only while the editor is idle.

        Returns the pending content, or None when the provider failed (the
        failure is broadcast as generation_error) or the result went stale.
        """
        self.state.require_game(game_id)
        session = self._session(game_id)
        async with session.lock:
            status = self.state.get_editor_state(game_id).status
            if status != "idle":
                raise EditorStateError(f"Cannot generate while the editor is {status}")
            epoch, generation_id = self._begin_generation(game_id, session, generation_type)
        return await self._run_generation(game_id, session, epoch, generation_id, generation_type, guidance)

    async def regenerate(self, game_id: str, guidance: str | None = None) -> GeneratedContent | None:
        """Discard pending content and generate again, from any status."""
        self.state.require_game(game_id)
        session = self._session(game_id)
        async with session.lock:
            generation_type = session.generation_type
            epoch, generation_id = self._begin_generation(game_id, session, generation_type)
        return await self._run_generation(game_id, session, epoch, generation_id, generation_type, guidance)

    def _begin_generation(
        self, game_id: str, session: _Session, generation_type: GenerationType
    ) -> tuple[int, str]:
        session.epoch += 1
        session.pending = None
        session.generation_type = generation_type
        generation_id = new_id()
        self.state.update_editor_state(game_id, DMEditorState(status="generating"))
        self._broadcaster.broadcast(game_id, GenerationStarted(generation_id=generation_id))
        return session.epoch, generation_id

    async def _run_generation(
        self,
        game_id: str,
        session: _Session,
        epoch: int,
        generation_id: str,
        generation_type: GenerationType,
        guidance: str | None,
    ) -> GeneratedContent | None:
        error: AIError | None = None
        content: GeneratedContent | None = None
        try:
            content = await asyncio.wait_for(
                self.pipeline.generate(game_id, generation_type, guidance, generation_id=generation_id),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            error = AIError("TIMEOUT", f"Generation timed out after {self._timeout}s", retryable=True)
        except AIError as e:
            error = e
        except Exception:
            # Prompt or storage failure: not a provider error, so it propagates.
            async with session.lock:
                if session.epoch == epoch:
                    self.state.update_editor_state(game_id, DMEditorState(status="idle"))
            raise

        async with session.lock:
            if session.epoch != epoch:
                logger.warning("Discarding stale generation %s for game %s", generation_id, game_id)
                return None

            if error is not None:
                logger.error("Generation %s failed for game %s: %s %s", generation_id, game_id, error.code, error.message)
                session.pending = None
                self.state.update_editor_state(game_id, DMEditorState(status="idle"))
                self._broadcaster.broadcast(game_id, GenerationError(
                    generation_id=generation_id, error=error.message, retryable=error.retryable
                ))
                return None

            session.pending = content
            self.state.update_editor_state(game_id, DMEditorState(pending=content.content, status="editing"))
            self._broadcaster.broadcast(game_id, GenerationComplete(
                generation_id=generation_id,
                content=content.content,
                event_type=content.event_type,
                metadata=content.metadata,
            ))
            return content

    # ------------------------------------------------------------------
    # DM actions
    # ------------------------------------------------------------------

    async def submit(self, game_id: str, action: DMAction) -> CanonicalEvent | None:
        """Apply a DM action. Returns the committed event for ACCEPT and INJECT."""
        self.state.require_game(game_id)
        if isinstance(action, AcceptAction):
            return await self._accept(game_id)
        if isinstance(action, EditAction):
            await self._edit(game_id, action.content)
            return None
        if isinstance(action, RegenerateAction):
            await self.regenerate(game_id, action.guidance)
            return None
        if isinstance(action, InjectAction):
            return await self.inject(game_id, action.content, action.event_type or "dm_injection")
        raise ValueError(f"Unknown action type: {getattr(action, 'type', action)!r}")

    async def _accept(self, game_id: str) -> CanonicalEvent:
        session = self._session(game_id)
        async with session.lock:
            state = self.state.get_editor_state(game_id)
            content = state.edited_content if state.edited_content is not None else state.pending
            if not content:
                raise NoContentError("No content to accept")

            self.state.update_editor_state(game_id, state.model_copy(update={"status": "accepting"}))
            generated = session.pending
            original = None
            if state.edited_content is not None and state.pending is not None:
                original = state.pending

            event = self.state.commit_event(
                game_id,
                event_type=generated.event_type if generated else "narration",
                content=content,
                original_generated=original,
                speaker=generated.metadata.speaker if generated else None,
            )
            session.pending = None
            self.state.clear_editor_state(game_id)

        await self._after_commit(game_id)
        return event

    async def _edit(self, game_id: str, content: str) -> None:
        session = self._session(game_id)
        async with session.lock:
            state = self.state.get_editor_state(game_id)
            if state.pending is None:
                raise NoContentError("No content to edit")
            self.state.update_editor_state(
                game_id, DMEditorState(pending=state.pending, edited_content=content, status="editing")
            )

    async def inject(
        self,
        game_id: str,
        content: str,
        event_type: EventType = "dm_injection",
        speaker: str | None = None,
        witnesses: Sequence[str] = (),
    ) -> CanonicalEvent:
        """Commit DM-authored content. Pending content is left untouched."""
        session = self._session(game_id)
        async with session.lock:
            event = self.state.commit_event(
                game_id, event_type=event_type, content=content, speaker=speaker, witnesses=witnesses
            )
        await self._after_commit(game_id)
        return event

    async def _after_commit(self, game_id: str) -> None:
        if not self.playback.should_chain(game_id):
            return
        # After an INJECT the DM may still be reviewing earlier content.
        if self.state.get_editor_state(game_id).status != "idle":
            logger.debug("Auto-advance for game %s waits on pending content", game_id)
            return
        await self.generate_next(game_id)

    # ------------------------------------------------------------------
    # Scenes
    # ------------------------------------------------------------------

    def create_scene(self, game_id: str, **fields) -> Scene:
        return self.scenes.create(self.state.require_game(game_id), **fields)

    async def start_scene(self, game_id: str, scene_id: str) -> Scene:
        """Make a scene the game's current scene and tell viewers."""
        self.state.require_game(game_id)
        async with self._session(game_id).lock:
            scene, game = self.scenes.start(self.state.require_game(game_id), scene_id)
            self.state.broadcast_game(game)
        return scene

    async def complete_scene(self, game_id: str, scene_id: str) -> Scene:
        self.state.require_game(game_id)
        async with self._session(game_id).lock:
            scene, game = self.scenes.complete(self.state.require_game(game_id), scene_id)
            self.state.broadcast_game(game)
        return scene

    def get_current_scene(self, game_id: str) -> Scene | None:
        return self.scenes.current(self.state.require_game(game_id))

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def set_playback_mode(self, game_id: str, mode: PlaybackMode) -> Game:
        game = self.playback.set_mode(game_id, mode)
        self.state.broadcast_game(game)
        return game

    def get_playback_mode(self, game_id: str) -> PlaybackMode:
        return self.playback.get_mode(game_id)

    async def step(self, game_id: str) -> bool:
        """Trigger one generation. A no-op returning False when stopped."""
        if not self.playback.can_step(game_id):
            return False
        await self.generate_next(game_id)
        return True

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def get_editor_state(self, game_id: str) -> DMEditorState:
        self.state.require_game(game_id)
        return self.state.get_editor_state(game_id)

    def get_pending_content(self, game_id: str) -> GeneratedContent | None:
        session = self._sessions.get(game_id)
        return session.pending if session else None
