"""Playback modes decide whether a commit chains into the next generation.

    auto      every ACCEPT or INJECT immediately requests the next generation
    paused    nothing happens until the DM asks
    stepping  like paused; the DM advances one generation at a time with step
    stopped   step is refused

The mode lives on the Game record, so it survives restarts. Changing it never
cancels pending or in-flight content.
"""

import logging

from reckoning.models import Game, PlaybackMode
from reckoning.storage import GameRepository

from .errors import GameNotFoundError

logger = logging.getLogger(__name__)


class PlaybackController:
    def __init__(self, games: GameRepository) -> None:
        self._games = games

    def get_mode(self, game_id: str) -> PlaybackMode:
        mode = self._games.get_playback_mode(game_id)
        if mode is None:
            raise GameNotFoundError(game_id)
        return mode

    def set_mode(self, game_id: str, mode: PlaybackMode) -> Game:
        game = self._games.set_playback_mode(game_id, mode)
        if game is None:
            raise GameNotFoundError(game_id)
        logger.info("Game %s playback mode -> %s", game_id, mode)
        return game

    def should_chain(self, game_id: str) -> bool:
        return self.get_mode(game_id) == "auto"

    def can_step(self, game_id: str) -> bool:
        return self.get_mode(game_id) != "stopped"
