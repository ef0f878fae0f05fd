"""Game lifecycle, editorial actions, playback and the SSE event stream."""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from backend.context import AppContext, get_context
from reckoning.broadcast import EditorStateView, sse_stream
from reckoning.engine import GameNotFoundError

from .models import ControlBody, InjectBody, NewGameBody, NextBody, RegenerateBody, SubmitBody

router = APIRouter()


def _editor_state(ctx: AppContext, game_id: str) -> dict:
    state = ctx.engine.get_editor_state(game_id)
    return EditorStateView.from_state(state).model_dump()


@router.post("/game/new")
async def new_game(body: NewGameBody, ctx: AppContext = Depends(get_context)):
    """Start a new game (paused) with a starting area and the player's character."""
    return ctx.engine.start_game(body.player_name, body.player_description)


@router.get("/game/list")
async def list_games(ctx: AppContext = Depends(get_context)):
    """List all games."""
    return ctx.storage.games.list_games()


@router.get("/game/{game_id}")
async def get_game(game_id: str, ctx: AppContext = Depends(get_context)):
    """Get a game with its editor state."""
    game = ctx.engine.get_game(game_id)
    return {"game": game, "editor_state": _editor_state(ctx, game_id)}


@router.get("/game/{game_id}/events")
async def game_events(game_id: str, request: Request, ctx: AppContext = Depends(get_context)):
    """Server-sent events for one game."""
    ctx.engine.get_game(game_id)
    sub = ctx.broadcaster.subscribe(game_id)

    stream = sse_stream(ctx.broadcaster, sub, request.is_disconnected)
    return StreamingResponse(stream, media_type="text/event-stream")


@router.get("/game/{game_id}/pending")
async def get_pending(game_id: str, ctx: AppContext = Depends(get_context)):
    """Pending generated content (if any) and the editor state."""
    return {
        "pending": ctx.engine.get_pending_content(game_id),
        "editor_state": _editor_state(ctx, game_id),
    }


@router.post("/game/{game_id}/next")
async def generate_next(game_id: str, body: NextBody | None = None, ctx: AppContext = Depends(get_context)):
    """Ask the AI for the next piece of content."""
    body = body or NextBody()
    await ctx.engine.generate_next(game_id, body.type, body.dm_guidance)
    return await get_pending(game_id, ctx)


@router.post("/game/{game_id}/submit")
async def submit(game_id: str, body: SubmitBody, ctx: AppContext = Depends(get_context)):
    """Apply a DM action (ACCEPT, EDIT, REGENERATE, INJECT)."""
    event = await ctx.engine.submit(game_id, body.action)
    return {"event": event, "game": ctx.engine.get_game(game_id)}


@router.post("/game/{game_id}/regenerate")
async def regenerate(game_id: str, body: RegenerateBody | None = None, ctx: AppContext = Depends(get_context)):
    """Discard pending content and generate again, optionally with feedback."""
    await ctx.engine.regenerate(game_id, body.feedback if body else None)
    return await get_pending(game_id, ctx)


@router.post("/game/{game_id}/inject")
async def inject(game_id: str, body: InjectBody, ctx: AppContext = Depends(get_context)):
    """Commit DM-authored content directly."""
    event = await ctx.engine.inject(game_id, body.content, body.event_type, body.speaker, body.witnesses)
    return {"event": event, "game": ctx.engine.get_game(game_id)}


@router.post("/game/{game_id}/control")
async def control(game_id: str, body: ControlBody, ctx: AppContext = Depends(get_context)):
    """Set the playback mode."""
    return ctx.engine.set_playback_mode(game_id, body.mode)


@router.post("/game/{game_id}/step")
async def step(game_id: str, ctx: AppContext = Depends(get_context)):
    """Generate once, unless playback is stopped."""
    stepped = await ctx.engine.step(game_id)
    return {"stepped": stepped, **(await get_pending(game_id, ctx))}


@router.get("/game/{game_id}/history")
async def history(game_id: str, ctx: AppContext = Depends(get_context)):
    """All committed events, oldest first."""
    if ctx.storage.games.find_by_id(game_id) is None:
        raise GameNotFoundError(game_id)
    return ctx.storage.events.find_by_game(game_id)
