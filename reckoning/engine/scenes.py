"""Scene lifecycle: create, start (becomes current) and complete."""

from __future__ import annotations

import logging

from reckoning.models import Game, Scene
from reckoning.storage import Storage

from .errors import SceneNotFoundError

logger = logging.getLogger(__name__)


class SceneManager:
    """Scene records and the game's current_scene_id.

    Turn numbers come from the game itself. The engine holds the game's lock
    around start and complete and broadcasts the resulting game state.
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def _require_scene(self, game_id: str, scene_id: str) -> Scene:
        scene = self._storage.world.get_scene(game_id, scene_id)
        if scene is None:
            raise SceneNotFoundError(scene_id)
        return scene

    def create(self, game: Game, **fields) -> Scene:
        scene = self._storage.world.save_scene(
            game.id, Scene(game_id=game.id, started_turn=game.turn, **fields)
        )
        logger.info("Created scene %s for game %s", scene.id, game.id)
        return scene

    def list_scenes(self, game_id: str) -> list[Scene]:
        return self._storage.world.get_scenes(game_id)

    def current(self, game: Game) -> Scene | None:
        if game.current_scene_id is None:
            return None
        return self._storage.world.get_scene(game.id, game.current_scene_id)

    def start(self, game: Game, scene_id: str) -> tuple[Scene, Game]:
        """Make a scene current. A completed scene cannot be started again."""
        scene = self._require_scene(game.id, scene_id)
        if scene.status == "completed":
            raise ValueError(f"Scene {scene_id} is already completed")
        scene = self._storage.world.save_scene(game.id, scene.model_copy(update={"started_turn": game.turn}))
        game = self._storage.games.set_current_scene(game.id, scene.id)
        logger.info("Game %s entered scene %s at turn %d", game.id, scene.id, game.turn)
        return scene, game

    def complete(self, game: Game, scene_id: str) -> tuple[Scene, Game]:
        """Close a scene. Clears current_scene_id when it was the current one."""
        scene = self._require_scene(game.id, scene_id)
        if scene.status == "completed":
            raise ValueError(f"Scene {scene_id} is already completed")
        scene = self._storage.world.save_scene(
            game.id, scene.model_copy(update={"status": "completed", "completed_turn": game.turn})
        )
        if game.current_scene_id == scene.id:
            game = self._storage.games.set_current_scene(game.id, None)
        logger.info("Game %s completed scene %s at turn %d", game.id, scene.id, game.turn)
        return scene, game
