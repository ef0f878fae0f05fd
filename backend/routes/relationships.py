"""Relationship dimensions, computed labels and the perceived overlay.

These are DM endpoints: they return true values.
"""

from fastapi import APIRouter, Depends

from backend.context import AppContext, get_context
from reckoning.labels import compute_labels, get_label_valence, get_short_label

from .models import PerceivedBody, RelationshipBody

router = APIRouter()


@router.get("/game/{game_id}/relationships")
async def list_relationships(game_id: str, ctx: AppContext = Depends(get_context)):
    """All relationships of a game."""
    ctx.engine.get_game(game_id)
    return ctx.storage.relationships.find_by_game(game_id)


@router.put("/game/{game_id}/relationships")
async def upsert_relationship(game_id: str, body: RelationshipBody, ctx: AppContext = Depends(get_context)):
    """Create or update one directional relationship."""
    game = ctx.engine.get_game(game_id)
    turn = body.updated_turn if body.updated_turn is not None else game.turn
    return ctx.storage.relationships.upsert(game_id, body.from_entity, body.to_entity, turn, body.values())


@router.get("/game/{game_id}/relationships/labels")
async def relationship_labels(game_id: str, ctx: AppContext = Depends(get_context)):
    """Computed labels for every relationship."""
    ctx.engine.get_game(game_id)
    result = []
    for rel in ctx.storage.relationships.find_by_game(game_id):
        labels = compute_labels(rel)
        result.append({
            "relationship_id": rel.id,
            "from_entity": rel.from_entity,
            "to_entity": rel.to_entity,
            "primary": labels.primary,
            "short_label": get_short_label(labels.primary),
            "valence": get_label_valence(labels.primary),
            "labels": labels.labels,
            "summary": labels.summary,
        })
    return result


@router.put("/game/{game_id}/perceived")
async def upsert_perceived(game_id: str, body: PerceivedBody, ctx: AppContext = Depends(get_context)):
    """Set what a character believes about how a target feels."""
    game = ctx.engine.get_game(game_id)
    turn = body.updated_turn if body.updated_turn is not None else game.turn
    given = {
        k: v for k, v in {
            "perceived_trust": body.perceived_trust,
            "perceived_respect": body.perceived_respect,
            "perceived_affection": body.perceived_affection,
        }.items()
        if v is not None
    }
    return ctx.storage.perceived.upsert(game_id, body.perceiver_id, body.target_id, turn, **given)
