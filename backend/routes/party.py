"""Party member endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Response

from backend.context import AppContext, get_context
from reckoning.models import Character
from reckoning.storage.world import PARTY_LIMITS

from .models import AddMember, UpdateHealth, UpdateMember

router = APIRouter()


def _require_member(ctx: AppContext, game_id: str, member_id: str) -> Character:
    ctx.engine.get_game(game_id)
    member = ctx.storage.world.get_character(game_id, member_id)
    if member is None:
        raise HTTPException(404, f"Party member not found: {member_id}")
    return member


@router.get("/party/{game_id}")
async def get_party(game_id: str, ctx: AppContext = Depends(get_context)):
    """Party members with the per-role limits and the slots left."""
    ctx.engine.get_game(game_id)
    return {
        "members": ctx.storage.world.get_characters(game_id),
        "limits": PARTY_LIMITS,
        "remaining_slots": ctx.storage.world.remaining_slots(game_id),
    }


@router.post("/party/{game_id}/members", status_code=201)
async def add_member(game_id: str, body: AddMember, ctx: AppContext = Depends(get_context)):
    """Add a member. A full role answers 400."""
    ctx.engine.get_game(game_id)
    member = ctx.storage.world.add_party_member(game_id, Character(**body.model_dump()))
    return {"member": member}


@router.put("/party/{game_id}/members/{member_id}")
async def update_member(game_id: str, member_id: str, body: UpdateMember, ctx: AppContext = Depends(get_context)):
    member = _require_member(ctx, game_id, member_id)
    updated = member.model_copy(update=body.model_dump(exclude_none=True))
    return {"member": ctx.storage.world.save_character(game_id, updated)}


@router.delete("/party/{game_id}/members/{member_id}", status_code=204)
async def remove_member(game_id: str, member_id: str, ctx: AppContext = Depends(get_context)):
    _require_member(ctx, game_id, member_id)
    ctx.storage.world.delete_character(game_id, member_id)
    return Response(status_code=204)


@router.put("/party/{game_id}/health")
async def update_health(game_id: str, body: UpdateHealth, ctx: AppContext = Depends(get_context)):
    """Set a member's health, capped at their max_health."""
    member = _require_member(ctx, game_id, body.character_id)
    health = body.health
    if "max_health" in member.stats:
        health = min(health, member.stats["max_health"])
    updated = member.model_copy(update={"stats": {**member.stats, "health": health}})
    return {"member": ctx.storage.world.save_character(game_id, updated)}
