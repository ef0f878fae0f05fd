"""Scene endpoints: create, list, current, start and complete."""

from fastapi import APIRouter, Depends

from backend.context import AppContext, get_context

from .models import CreateScene

router = APIRouter()


@router.get("/scene/{game_id}")
async def list_scenes(game_id: str, ctx: AppContext = Depends(get_context)):
    """List all scenes of a game."""
    ctx.engine.get_game(game_id)
    return ctx.engine.scenes.list_scenes(game_id)


@router.post("/scene/{game_id}", status_code=201)
async def create_scene(game_id: str, body: CreateScene, ctx: AppContext = Depends(get_context)):
    """Create a scene starting at the current turn. It does not become current."""
    return ctx.engine.create_scene(game_id, **body.model_dump(exclude_none=True))


@router.get("/scene/{game_id}/current")
async def current_scene(game_id: str, ctx: AppContext = Depends(get_context)):
    return {"scene": ctx.engine.get_current_scene(game_id)}


@router.post("/scene/{game_id}/{scene_id}/start")
async def start_scene(game_id: str, scene_id: str, ctx: AppContext = Depends(get_context)):
    """Make a scene the game's current scene."""
    scene = await ctx.engine.start_scene(game_id, scene_id)
    return {"scene": scene, "game": ctx.engine.get_game(game_id)}


@router.post("/scene/{game_id}/{scene_id}/complete")
async def complete_scene(game_id: str, scene_id: str, ctx: AppContext = Depends(get_context)):
    """Complete a scene; the game has no current scene afterwards if it was current."""
    scene = await ctx.engine.complete_scene(game_id, scene_id)
    return {"scene": scene, "game": ctx.engine.get_game(game_id)}
