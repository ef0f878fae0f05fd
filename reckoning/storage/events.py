"""Canonical event log (append-only per game)."""

from reckoning.models import CanonicalEvent

from .core import JsonStore

_COLLECTION = "events"


class EventRepository:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    def create(self, event: CanonicalEvent) -> CanonicalEvent:
        """Append an event. Turns must strictly increase within a game."""
        rows = self._store.read_collection(event.game_id, _COLLECTION)
        if rows and rows[-1]["turn"] >= event.turn:
            raise ValueError(
                f"Event turn {event.turn} does not follow last committed turn {rows[-1]['turn']}"
            )
        rows.append(event.model_dump(mode="json"))
        self._store.write_collection(event.game_id, _COLLECTION, rows)
        return event

    def find_by_game(self, game_id: str) -> list[CanonicalEvent]:
        return [
            CanonicalEvent.model_validate(row)
            for row in self._store.read_collection(game_id, _COLLECTION)
        ]

    def find_recent(self, game_id: str, limit: int = 10) -> list[CanonicalEvent]:
        """The last `limit` events, oldest first."""
        if limit <= 0:
            return []
        return self.find_by_game(game_id)[-limit:]

    def find_by_id(self, game_id: str, event_id: str) -> CanonicalEvent | None:
        for event in self.find_by_game(game_id):
            if event.id == event_id:
                return event
        return None
