"""Storage root, per-game paths and JSON helpers."""

import json
import shutil
from pathlib import Path
from typing import Any


class JsonStore:
    """File-based JSON storage rooted at one directory.

    Layout:
      {base}/
        config.json           App settings
        games/
          {game_id}.json      Game record
          {game_id}/          One JSON list per collection (events.json, ...)
    """

    def __init__(self, base_path: Path) -> None:
        self.base = base_path
        self.games_root = base_path / "games"
        self.games_root.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def game_file(self, game_id: str) -> Path:
        return self.games_root / f"{game_id}.json"

    def game_dir(self, game_id: str) -> Path:
        return self.games_root / game_id

    def collection_path(self, game_id: str, name: str) -> Path:
        return self.game_dir(game_id) / f"{name}.json"

    # ------------------------------------------------------------------
    # JSON helpers
    # ------------------------------------------------------------------

    def read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def write_json(self, path: Path, data: Any) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2))

    def read_collection(self, game_id: str, name: str) -> list[dict[str, Any]]:
        """Load a per-game list. Returns [] if it was never written."""
        path = self.collection_path(game_id, name)
        if not path.is_file():
            return []
        return self.read_json(path)

    def write_collection(self, game_id: str, name: str, rows: list[dict[str, Any]]) -> None:
        self.write_json(self.collection_path(game_id, name), rows)

    def delete_game(self, game_id: str) -> bool:
        path = self.game_file(game_id)
        if not path.is_file():
            return False
        path.unlink()
        child_dir = self.game_dir(game_id)
        if child_dir.is_dir():
            shutil.rmtree(child_dir)
        return True
