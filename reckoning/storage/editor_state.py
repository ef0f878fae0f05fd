"""DM editor state: one transient record per game, held in memory only."""

from reckoning.models import DMEditorState


class EditorStateRepository:
    def __init__(self) -> None:
        self._states: dict[str, DMEditorState] = {}

    def get(self, game_id: str) -> DMEditorState | None:
        return self._states.get(game_id)

    def set(self, game_id: str, state: DMEditorState) -> None:
        if state.pending is not None and state.status == "idle":
            raise ValueError("Editor state with pending content cannot be idle")
        self._states[game_id] = state

    def clear(self, game_id: str) -> None:
        self._states.pop(game_id, None)
