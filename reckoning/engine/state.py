"""Event commits, turn bookkeeping and editor-state broadcasts."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from reckoning.broadcast import Broadcaster, EditorStateEvent, EditorStateView, StateChanged
from reckoning.models import CanonicalEvent, DMEditorState, EventType, Game
from reckoning.storage import Storage

from .errors import GameNotFoundError

logger = logging.getLogger(__name__)

EventSink = Callable[[CanonicalEvent], None]


class StateManager:
    """Writes through the repositories and tells viewers what changed.

    Callers hold the game's lock, so commits and their state_changed
    broadcasts happen in turn order.
    """

    def __init__(self, storage: Storage, broadcaster: Broadcaster, event_sink: EventSink | None = None) -> None:
        self._storage = storage
        self._broadcaster = broadcaster
        self._event_sink = event_sink

    def require_game(self, game_id: str) -> Game:
        game = self._storage.games.find_by_id(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    def broadcast_game(self, game: Game) -> None:
        self._broadcaster.broadcast(game.id, StateChanged(state=game.model_dump(mode="json")))

    def commit_event(
        self,
        game_id: str,
        event_type: EventType,
        content: str,
        original_generated: str | None = None,
        speaker: str | None = None,
        witnesses: Sequence[str] = (),
    ) -> CanonicalEvent:
        """Append an event at the current turn, then advance the turn by one."""
        game = self.require_game(game_id)
        event = self._storage.events.create(CanonicalEvent(
            game_id=game_id,
            turn=game.turn,
            event_type=event_type,
            content=content,
            original_generated=original_generated,
            speaker=speaker,
            location_id=game.current_area_id,
            witnesses=tuple(witnesses),
        ))
        new_turn = self._storage.games.increment_turn(game_id)
        logger.info("Committed %s event %s for game %s at turn %d", event_type, event.id, game_id, event.turn)
        self.broadcast_game(self.require_game(game_id))
        if self._event_sink is not None:
            self._event_sink(event)
        logger.debug("Game %s advanced to turn %d", game_id, new_turn)
        return event

    def get_editor_state(self, game_id: str) -> DMEditorState:
        return self._storage.editor_state.get(game_id) or DMEditorState()

    def update_editor_state(self, game_id: str, state: DMEditorState) -> None:
        self._storage.editor_state.set(game_id, state)
        self._broadcaster.broadcast(
            game_id, EditorStateEvent(editor_state=EditorStateView.from_state(state))
        )

    def clear_editor_state(self, game_id: str) -> None:
        self._storage.editor_state.clear(game_id)
        self._broadcaster.broadcast(
            game_id, EditorStateEvent(editor_state=EditorStateView.from_state(DMEditorState()))
        )
