"""Evolution proposals awaiting DM review, and emergence notifications."""

from fastapi import APIRouter, Depends

from backend.context import AppContext, get_context

from .models import EditEvolutionBody, ProposeRelationshipChange, ProposeTrait, ResolveBody

router = APIRouter()


@router.get("/evolution/{game_id}")
async def list_pending(game_id: str, ctx: AppContext = Depends(get_context)):
    """Evolutions still awaiting a decision."""
    ctx.engine.get_game(game_id)
    return ctx.evolution.pending(game_id)


@router.post("/evolution/{game_id}/relationship")
async def propose_relationship_change(
    game_id: str, body: ProposeRelationshipChange, ctx: AppContext = Depends(get_context)
):
    """Propose a relationship dimension change for review."""
    game = ctx.engine.get_game(game_id)
    return ctx.evolution.propose_relationship_change(
        game_id, game.turn, body.from_entity, body.to_entity,
        body.dimension, body.change, body.reason, body.source_event_id,
    )


@router.post("/evolution/{game_id}/trait")
async def propose_trait(game_id: str, body: ProposeTrait, ctx: AppContext = Depends(get_context)):
    """Propose adding or removing a trait for review."""
    game = ctx.engine.get_game(game_id)
    return ctx.evolution.propose_trait(
        game_id, game.turn, body.entity, body.trait, body.reason,
        remove=body.remove, source_event_id=body.source_event_id,
    )


@router.post("/evolution/{game_id}/{evolution_id}/approve")
async def approve(game_id: str, evolution_id: str, body: ResolveBody | None = None,
                  ctx: AppContext = Depends(get_context)):
    """Apply an evolution as proposed."""
    return ctx.evolution.approve(game_id, evolution_id, body.dm_notes if body else None)


@router.post("/evolution/{game_id}/{evolution_id}/edit")
async def edit(game_id: str, evolution_id: str, body: EditEvolutionBody,
               ctx: AppContext = Depends(get_context)):
    """Apply an evolution with DM changes."""
    return ctx.evolution.edit(
        game_id, evolution_id,
        new_value=body.new_value, trait=body.trait, reason=body.reason, dm_notes=body.dm_notes,
    )


@router.post("/evolution/{game_id}/{evolution_id}/refuse")
async def refuse(game_id: str, evolution_id: str, body: ResolveBody | None = None,
                 ctx: AppContext = Depends(get_context)):
    """Reject an evolution."""
    return ctx.evolution.refuse(game_id, evolution_id, body.dm_notes if body else None)


@router.get("/evolution/{game_id}/emergence")
async def emergence(game_id: str, ctx: AppContext = Depends(get_context)):
    """Unacknowledged villain and ally opportunities."""
    ctx.engine.get_game(game_id)
    return ctx.storage.emergence.find_by_game(game_id)


@router.post("/evolution/{game_id}/emergence/{notification_id}/acknowledge")
async def acknowledge(game_id: str, notification_id: str, ctx: AppContext = Depends(get_context)):
    """Dismiss an emergence notification."""
    notification = ctx.storage.emergence.acknowledge(game_id, notification_id)
    if notification is None:
        raise LookupError(f"Emergence notification not found: {notification_id}")
    return notification
