"""DM, party and player projections of a game."""

from fastapi import APIRouter, Depends, HTTPException

from backend.context import AppContext, get_context
from reckoning.engine import GameNotFoundError
from reckoning.view_filter import FullGameState, build_full_game_state, filter_game_state_for_view

router = APIRouter()


def _snapshot(ctx: AppContext, game_id: str) -> FullGameState:
    state = build_full_game_state(ctx.storage, game_id, narration_limit=ctx.recent_history)
    if state is None:
        raise GameNotFoundError(game_id)
    return state


@router.get("/view/{game_id}/dm")
async def dm_view(game_id: str, ctx: AppContext = Depends(get_context)):
    """Full game state, including true relationship values and hidden notes."""
    return filter_game_state_for_view(_snapshot(ctx, game_id), "dm")


@router.get("/view/{game_id}/party")
async def party_view(game_id: str, ctx: AppContext = Depends(get_context)):
    """Shared display: narration, avatars, scene and area only."""
    return filter_game_state_for_view(_snapshot(ctx, game_id), "party")


@router.get("/view/{game_id}/player/{character_id}")
async def player_view(game_id: str, character_id: str, ctx: AppContext = Depends(get_context)):
    """One character's perspective."""
    state = _snapshot(ctx, game_id)
    if not any(c.id == character_id for c in state.characters):
        raise HTTPException(404, "Character not found")
    return filter_game_state_for_view(state, "player", character_id)
