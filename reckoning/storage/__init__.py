"""File-based JSON storage for games and their child records.

Data layout:
  data/
    config.json                 App settings (AI connection, timeouts, evolution)
    games/
      <game_id>.json            Game record (turn, playback mode, area, scene)
      <game_id>/                Child collections:
        events.json             Canonical event log, append-only, turn-ordered
        relationships.json      Directional six-dimension relationships
        perceived_relationships.json
        traits.json             Entity traits
        characters.json         Party members
        npcs.json
        areas.json
        scenes.json
        pending_evolutions.json
        emergence_notifications.json

Editor state is never written to disk: it lives in memory for the duration
of one review cycle.
"""

from pathlib import Path
from typing import Any

from .config import CONFIG_DEFAULTS, ConfigStore  # noqa: F401
from .core import JsonStore  # noqa: F401
from .editor_state import EditorStateRepository  # noqa: F401
from .events import EventRepository  # noqa: F401
from .evolutions import EmergenceNotificationRepository, PendingEvolutionRepository  # noqa: F401
from .games import GameRepository  # noqa: F401
from .relationships import (  # noqa: F401
    PerceivedRelationshipRepository,
    RelationshipRepository,
    check_dimension_value,
)
from .traits import TraitRepository  # noqa: F401
from .world import WorldRepository  # noqa: F401


class Storage:
    """All repositories over one data directory."""

    def __init__(self, base_path: Path) -> None:
        self.store = JsonStore(base_path)
        self.games = GameRepository(self.store)
        self.events = EventRepository(self.store)
        self.editor_state = EditorStateRepository()
        self.relationships = RelationshipRepository(self.store)
        self.perceived = PerceivedRelationshipRepository(self.store)
        self.traits = TraitRepository(self.store)
        self.world = WorldRepository(self.store)
        self.evolutions = PendingEvolutionRepository(self.store)
        self.emergence = EmergenceNotificationRepository(self.store)
        self._config = ConfigStore(self.store)

    @property
    def base(self) -> Path:
        return self.store.base

    def get_config(self) -> dict[str, Any]:
        return self._config.get_config()

    def update_config(self, fields: dict[str, Any]) -> dict[str, Any]:
        return self._config.update_config(fields)
