"""Party characters, NPCs, areas and scenes of a game."""

from collections import Counter
from typing import TypeVar

from pydantic import BaseModel

from reckoning.models import NPC, Area, Character, CharacterRole, Scene

from .core import JsonStore

T = TypeVar("T", bound=BaseModel)

PARTY_LIMITS: dict[CharacterRole, int] = {"player": 1, "member": 2, "companion": 2}


class WorldRepository:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    def _load(self, game_id: str, name: str, model: type[T]) -> list[T]:
        return [model.model_validate(row) for row in self._store.read_collection(game_id, name)]

    def _upsert(self, game_id: str, name: str, model: type[T], item: T) -> T:
        """Upsert by id."""
        items = self._load(game_id, name, model)
        for i, existing in enumerate(items):
            if existing.id == item.id:
                items[i] = item
                break
        else:
            items.append(item)
        self._store.write_collection(game_id, name, [x.model_dump(mode="json") for x in items])
        return item

    # ------------------------------------------------------------------
    # Party characters
    # ------------------------------------------------------------------

    def save_character(self, game_id: str, character: Character) -> Character:
        return self._upsert(game_id, "characters", Character, character)

    def get_characters(self, game_id: str) -> list[Character]:
        return self._load(game_id, "characters", Character)

    def get_character(self, game_id: str, character_id: str) -> Character | None:
        for c in self.get_characters(game_id):
            if c.id == character_id:
                return c
        return None

    def remaining_slots(self, game_id: str) -> dict[str, int]:
        counts = Counter(c.role for c in self.get_characters(game_id))
        return {role: limit - counts[role] for role, limit in PARTY_LIMITS.items()}

    def add_party_member(self, game_id: str, character: Character) -> Character:
        """Save a new party member. Raises ValueError when its role is full."""
        if self.remaining_slots(game_id)[character.role] <= 0:
            raise ValueError(
                f"Party limit exceeded: cannot have more than {PARTY_LIMITS[character.role]} {character.role}(s)"
            )
        return self.save_character(game_id, character)

    def delete_character(self, game_id: str, character_id: str) -> bool:
        characters = self.get_characters(game_id)
        kept = [c for c in characters if c.id != character_id]
        if len(kept) == len(characters):
            return False
        self._store.write_collection(game_id, "characters", [c.model_dump(mode="json") for c in kept])
        return True

    # ------------------------------------------------------------------
    # NPCs
    # ------------------------------------------------------------------

    def save_npc(self, game_id: str, npc: NPC) -> NPC:
        return self._upsert(game_id, "npcs", NPC, npc)

    def get_npcs(self, game_id: str, area_id: str | None = None) -> list[NPC]:
        npcs = self._load(game_id, "npcs", NPC)
        if area_id is None:
            return npcs
        return [n for n in npcs if n.current_area_id == area_id]

    # ------------------------------------------------------------------
    # Areas
    # ------------------------------------------------------------------

    def save_area(self, game_id: str, area: Area) -> Area:
        return self._upsert(game_id, "areas", Area, area)

    def get_area(self, game_id: str, area_id: str) -> Area | None:
        for a in self._load(game_id, "areas", Area):
            if a.id == area_id:
                return a
        return None

    # ------------------------------------------------------------------
    # Scenes
    # ------------------------------------------------------------------

    def save_scene(self, game_id: str, scene: Scene) -> Scene:
        return self._upsert(game_id, "scenes", Scene, scene)

    def get_scenes(self, game_id: str) -> list[Scene]:
        return self._load(game_id, "scenes", Scene)

    def get_scene(self, game_id: str, scene_id: str) -> Scene | None:
        for s in self._load(game_id, "scenes", Scene):
            if s.id == scene_id:
                return s
        return None
