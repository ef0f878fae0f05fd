"""Contract errors raised by the editorial engine.

These are caller faults and always propagate. Provider failures are not
among them: they are reported to viewers as generation_error broadcasts.
"""


class GameNotFoundError(LookupError):
    def __init__(self, game_id: str) -> None:
        super().__init__(f"Game not found: {game_id}")
        self.game_id = game_id


class NoContentError(RuntimeError):
    """ACCEPT or EDIT issued with nothing to act on."""


class EditorStateError(RuntimeError):
    """An operation was attempted from an editor status that does not allow it."""


class SceneNotFoundError(LookupError):
    def __init__(self, scene_id: str) -> None:
        super().__init__(f"Scene not found: {scene_id}")
        self.scene_id = scene_id
