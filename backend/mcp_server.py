"""FastMCP server exposing the relationship perception model as MCP tools.

Tools:
  - relationship_labels(game_id, from_id, to_id)  labels for one direction
  - player_view(game_id, character_id)             what that character sees

The server is built around one Storage by create_mcp(); tests pass a
temporary one.

Usage:
    uv run python -m backend.mcp_server
"""

import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from reckoning.labels import compute_labels, get_label_valence
from reckoning.storage import Storage
from reckoning.view_filter import build_full_game_state, filter_game_state_for_view


def create_mcp(storage: Storage) -> FastMCP:
    mcp = FastMCP("reckoning-perception")

    @mcp.tool()
    def relationship_labels(game_id: str, from_id: str, to_id: str) -> dict:
        """How `from_id` feels about `to_id`, as labels. Empty if unknown."""
        rel = next(
            (
                r for r in storage.relationships.find_by_game(game_id)
                if r.from_entity.id == from_id and r.to_entity.id == to_id
            ),
            None,
        )
        if rel is None:
            return {}
        labels = compute_labels(rel)
        return {
            "primary": labels.primary,
            "valence": get_label_valence(labels.primary),
            "summary": labels.summary,
            "labels": [s.model_dump() for s in labels.labels],
        }

    @mcp.tool()
    def player_view(game_id: str, character_id: str) -> dict:
        """The game as one character perceives it. Never includes hidden dimensions."""
        state = build_full_game_state(storage, game_id)
        if state is None:
            return {}
        return filter_game_state_for_view(state, "player", character_id).model_dump(mode="json")

    return mcp


if __name__ == "__main__":
    data_dir = Path(os.getenv("DATA_DIR", Path(__file__).parent.parent / "data"))
    create_mcp(Storage(data_dir)).run()
