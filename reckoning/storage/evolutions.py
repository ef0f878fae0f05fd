"""Pending evolutions awaiting DM review, and emergence notifications."""

from reckoning.models import EmergenceNotification, PendingEvolution

from .core import JsonStore

_EVOLUTIONS = "pending_evolutions"
_EMERGENCE = "emergence_notifications"


class PendingEvolutionRepository:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    def _load(self, game_id: str) -> list[PendingEvolution]:
        return [PendingEvolution.model_validate(r) for r in self._store.read_collection(game_id, _EVOLUTIONS)]

    def save(self, evolution: PendingEvolution) -> PendingEvolution:
        """Upsert by id."""
        rows = self._load(evolution.game_id)
        for i, existing in enumerate(rows):
            if existing.id == evolution.id:
                rows[i] = evolution
                break
        else:
            rows.append(evolution)
        self._store.write_collection(
            evolution.game_id, _EVOLUTIONS, [r.model_dump(mode="json") for r in rows]
        )
        return evolution

    def find_by_id(self, game_id: str, evolution_id: str) -> PendingEvolution | None:
        for e in self._load(game_id):
            if e.id == evolution_id:
                return e
        return None

    def find_by_game(self, game_id: str, include_resolved: bool = False) -> list[PendingEvolution]:
        rows = self._load(game_id)
        if include_resolved:
            return rows
        return [e for e in rows if e.status == "pending"]


class EmergenceNotificationRepository:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    def _load(self, game_id: str) -> list[EmergenceNotification]:
        return [
            EmergenceNotification.model_validate(r)
            for r in self._store.read_collection(game_id, _EMERGENCE)
        ]

    def create(self, notification: EmergenceNotification) -> EmergenceNotification:
        rows = self._load(notification.game_id)
        rows.append(notification)
        self._store.write_collection(
            notification.game_id, _EMERGENCE, [r.model_dump(mode="json") for r in rows]
        )
        return notification

    def find_by_game(self, game_id: str, include_acknowledged: bool = False) -> list[EmergenceNotification]:
        rows = self._load(game_id)
        if include_acknowledged:
            return rows
        return [n for n in rows if not n.acknowledged]

    def acknowledge(self, game_id: str, notification_id: str) -> EmergenceNotification | None:
        rows = self._load(game_id)
        for i, n in enumerate(rows):
            if n.id == notification_id:
                rows[i] = n.model_copy(update={"acknowledged": True})
                self._store.write_collection(game_id, _EMERGENCE, [r.model_dump(mode="json") for r in rows])
                return rows[i]
        return None
