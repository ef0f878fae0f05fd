"""Game records: turn counter, playback mode, current area and scene."""

from typing import Any

from reckoning.models import Game, PlaybackMode, utcnow

from .core import JsonStore


class GameRepository:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    def _save(self, game: Game) -> Game:
        self._store.write_json(self._store.game_file(game.id), game.model_dump(mode="json"))
        self._store.game_dir(game.id).mkdir(exist_ok=True)
        return game

    def create(self, current_area_id: str, player_id: str = "", mode: PlaybackMode = "paused") -> Game:
        return self._save(Game(current_area_id=current_area_id, player_id=player_id, playback_mode=mode))

    def find_by_id(self, game_id: str) -> Game | None:
        path = self._store.game_file(game_id)
        if not path.is_file():
            return None
        return Game.model_validate(self._store.read_json(path))

    def list_games(self) -> list[Game]:
        return [
            Game.model_validate(self._store.read_json(path))
            for path in sorted(self._store.games_root.glob("*.json"))
        ]

    def update(self, game_id: str, fields: dict[str, Any]) -> Game | None:
        """Overwrite mutable fields. Returns the updated game, or None if missing."""
        game = self.find_by_id(game_id)
        if game is None:
            return None
        allowed = {"current_area_id", "current_scene_id", "playback_mode", "player_id"}
        data = game.model_dump()
        for key, value in fields.items():
            if key in allowed:
                data[key] = value
        data["updated_at"] = utcnow()
        return self._save(Game.model_validate(data))

    def increment_turn(self, game_id: str) -> int:
        """Advance the turn by exactly one and return the new turn number."""
        game = self.find_by_id(game_id)
        if game is None:
            raise LookupError(f"Game not found: {game_id}")
        data = game.model_dump()
        data["turn"] = game.turn + 1
        data["updated_at"] = utcnow()
        self._save(Game.model_validate(data))
        return data["turn"]

    def set_playback_mode(self, game_id: str, mode: PlaybackMode) -> Game | None:
        return self.update(game_id, {"playback_mode": mode})

    def get_playback_mode(self, game_id: str) -> PlaybackMode | None:
        game = self.find_by_id(game_id)
        return game.playback_mode if game else None

    def set_current_scene(self, game_id: str, scene_id: str | None) -> Game | None:
        return self.update(game_id, {"current_scene_id": scene_id})

    def delete(self, game_id: str) -> bool:
        return self._store.delete_game(game_id)
