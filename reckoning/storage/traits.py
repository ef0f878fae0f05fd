"""Entity traits (character/NPC descriptors acquired during play)."""

from reckoning.models import EntityTrait, EntityType, TraitStatus

from .core import JsonStore

_COLLECTION = "traits"


class TraitRepository:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    def _load(self, game_id: str) -> list[EntityTrait]:
        return [EntityTrait.model_validate(row) for row in self._store.read_collection(game_id, _COLLECTION)]

    def _save(self, game_id: str, traits: list[EntityTrait]) -> None:
        self._store.write_collection(game_id, _COLLECTION, [t.model_dump(mode="json") for t in traits])

    def add(
        self,
        game_id: str,
        entity_type: EntityType,
        entity_id: str,
        trait: str,
        turn: int,
        source_event_id: str | None = None,
    ) -> EntityTrait:
        """Add a trait. An already-active identical trait is returned unchanged."""
        traits = self._load(game_id)
        for t in traits:
            if (t.entity_type, t.entity_id, t.trait, t.status) == (entity_type, entity_id, trait, "active"):
                return t
        created = EntityTrait(
            game_id=game_id,
            entity_type=entity_type,
            entity_id=entity_id,
            trait=trait,
            acquired_turn=turn,
            source_event_id=source_event_id,
        )
        traits.append(created)
        self._save(game_id, traits)
        return created

    def set_status(self, game_id: str, trait_id: str, status: TraitStatus) -> EntityTrait | None:
        traits = self._load(game_id)
        for i, t in enumerate(traits):
            if t.id == trait_id:
                traits[i] = t.model_copy(update={"status": status})
                self._save(game_id, traits)
                return traits[i]
        return None

    def find_by_entity(self, game_id: str, entity_type: EntityType, entity_id: str) -> list[EntityTrait]:
        return [t for t in self._load(game_id) if t.entity_type == entity_type and t.entity_id == entity_id]

    def find_by_game(self, game_id: str) -> list[EntityTrait]:
        return self._load(game_id)

    def remove(self, game_id: str, entity_type: EntityType, entity_id: str, trait: str) -> EntityTrait | None:
        """Mark the active trait of that name as removed. None if there is none."""
        for t in self.find_by_entity(game_id, entity_type, entity_id):
            if t.trait == trait and t.status == "active":
                return self.set_status(game_id, t.id, "removed")
        return None
