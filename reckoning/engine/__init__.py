"""DM editorial engine, playback control and the content pipeline."""

from .editor import GameEngine  # noqa: F401
from .errors import EditorStateError, GameNotFoundError, NoContentError, SceneNotFoundError  # noqa: F401
from .pipeline import GAME_CONTENT_SCHEMA, ContentPipeline, parse_response  # noqa: F401
from .playback import PlaybackController  # noqa: F401
from .scenes import SceneManager  # noqa: F401
from .state import StateManager  # noqa: F401
