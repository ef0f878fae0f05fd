"""Per-viewer projections of one game snapshot.

Three views share the same FullGameState:

    dm      everything, including true relationship dimensions and all traits
    party   the shared display: narration, avatars, scene and area, nothing else
    player  one character's perspective: own active traits, other members'
            reputation traits, NPC public fields, and relationships seen
            through the perceived overlay

The projection is pure. fear, resentment and debt never appear anywhere in a
player view; PlayerRelationshipView has no field that could carry them.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from reckoning.models import (
    NPC,
    Area,
    Character,
    EntityTrait,
    Game,
    PendingEvolution,
    PerceivedRelationship,
    PixelArtRef,
    Relationship,
    Scene,
    perceived_or,
)
from reckoning.storage import Storage

ViewType = Literal["dm", "party", "player"]

# Traits anyone in the party can see on another member. All others are private.
REPUTATION_TRAITS = frozenset({"feared", "beloved", "notorious", "mysterious", "disgraced", "legendary"})


class FullGameState(BaseModel):
    model_config = ConfigDict(frozen=True)

    game: Game
    characters: tuple[Character, ...] = ()
    current_area: Area | None = None
    npcs: tuple[NPC, ...] = ()
    traits: tuple[EntityTrait, ...] = ()
    relationships: tuple[Relationship, ...] = ()
    perceived_relationships: tuple[PerceivedRelationship, ...] = ()
    pending_evolutions: tuple[PendingEvolution, ...] = ()
    current_scene: Scene | None = None
    recent_narration: tuple[str, ...] = ()


class PartyAvatar(BaseModel):
    id: str
    name: str
    pixel_art_ref: PixelArtRef | None = None


class SceneDisplay(BaseModel):
    id: str
    name: str | None = None
    scene_type: str | None = None
    mood: str | None = None


class AreaDisplay(BaseModel):
    id: str
    name: str
    description: str


class PartyViewState(BaseModel):
    narration: list[str]
    avatars: list[PartyAvatar]
    scene: SceneDisplay | None
    area: AreaDisplay | None


class PlayerGameInfo(BaseModel):
    id: str
    turn: int
    current_area_id: str


class PartyMemberView(BaseModel):
    id: str
    name: str
    character_class: str
    visible_traits: list[str]


class NPCView(BaseModel):
    id: str
    name: str
    description: str
    disposition: str


class FilteredTrait(BaseModel):
    trait: str
    acquired_turn: int


class PlayerRelationshipView(BaseModel):
    target_id: str
    target_name: str
    target_type: Literal["character", "npc"]
    perceived_trust: float
    perceived_respect: float
    perceived_affection: float


class PlayerViewState(BaseModel):
    game: PlayerGameInfo
    character: Character | None
    party_members: list[PartyMemberView]
    area: AreaDisplay | None
    npcs: list[NPCView]
    own_traits: list[FilteredTrait]
    relationships: list[PlayerRelationshipView]
    narration: list[str]
    scene: SceneDisplay | None


FilteredGameState = FullGameState | PartyViewState | PlayerViewState


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

def filter_game_state_for_view(
    state: FullGameState, view: ViewType, character_id: str | None = None
) -> FilteredGameState:
    if view == "dm":
        return state
    if view == "party":
        return _party_view(state)
    if view == "player":
        if not character_id:
            raise ValueError("character_id is required for player view")
        return _player_view(state, character_id)
    raise ValueError(f"Unknown view: {view}")


def _scene_display(scene: Scene | None) -> SceneDisplay | None:
    if scene is None:
        return None
    return SceneDisplay(id=scene.id, name=scene.name, scene_type=scene.scene_type, mood=scene.mood)


def _area_display(area: Area | None) -> AreaDisplay | None:
    if area is None:
        return None
    return AreaDisplay(id=area.id, name=area.name, description=area.description)


def _party_view(state: FullGameState) -> PartyViewState:
    return PartyViewState(
        narration=list(state.recent_narration),
        avatars=[PartyAvatar(id=c.id, name=c.name, pixel_art_ref=c.pixel_art_ref) for c in state.characters],
        scene=_scene_display(state.current_scene),
        area=_area_display(state.current_area),
    )


def _active_traits(state: FullGameState, character_id: str) -> list[EntityTrait]:
    return [
        t for t in state.traits
        if t.entity_id == character_id and t.entity_type == "character" and t.status == "active"
    ]


def _player_relationships(state: FullGameState, character_id: str) -> list[PlayerRelationshipView]:
    names = {c.id: c.name for c in state.characters}
    npc_names = {n.id: n.name for n in state.npcs}
    views = []
    for rel in state.relationships:
        if rel.from_entity.id != character_id:
            continue
        perceived = next(
            (
                p for p in state.perceived_relationships
                if p.perceiver_id == character_id and p.target_id == rel.to_entity.id
            ),
            None,
        )
        if rel.to_entity.type == "npc":
            target_type, target_name = "npc", npc_names.get(rel.to_entity.id, "Unknown")
        else:
            target_type, target_name = "character", names.get(rel.to_entity.id, "Unknown")

        trust, respect, affection = rel.trust, rel.respect, rel.affection
        if perceived is not None:
            trust = perceived_or(perceived.perceived_trust, trust)
            respect = perceived_or(perceived.perceived_respect, respect)
            affection = perceived_or(perceived.perceived_affection, affection)

        views.append(PlayerRelationshipView(
            target_id=rel.to_entity.id,
            target_name=target_name,
            target_type=target_type,
            perceived_trust=trust,
            perceived_respect=respect,
            perceived_affection=affection,
        ))
    return views


def _player_view(state: FullGameState, character_id: str) -> PlayerViewState:
    character = next((c for c in state.characters if c.id == character_id), None)
    members = [
        PartyMemberView(
            id=c.id,
            name=c.name,
            character_class=c.character_class,
            visible_traits=[t.trait for t in _active_traits(state, c.id) if t.trait in REPUTATION_TRAITS],
        )
        for c in state.characters
        if c.id != character_id
    ]
    return PlayerViewState(
        game=PlayerGameInfo(
            id=state.game.id, turn=state.game.turn, current_area_id=state.game.current_area_id
        ),
        character=character,
        party_members=members,
        area=_area_display(state.current_area),
        npcs=[
            NPCView(id=n.id, name=n.name, description=n.description, disposition=n.disposition)
            for n in state.npcs
        ],
        own_traits=[
            FilteredTrait(trait=t.trait, acquired_turn=t.acquired_turn)
            for t in _active_traits(state, character_id)
        ],
        relationships=_player_relationships(state, character_id),
        narration=list(state.recent_narration),
        scene=_scene_display(state.current_scene),
    )


# ---------------------------------------------------------------------------
# Snapshot assembly
# ---------------------------------------------------------------------------

def build_full_game_state(storage: Storage, game_id: str, narration_limit: int = 10) -> FullGameState | None:
    """Read one consistent snapshot of a game from storage. None if missing."""
    game = storage.games.find_by_id(game_id)
    if game is None:
        return None
    scene = None
    if game.current_scene_id:
        scene = storage.world.get_scene(game_id, game.current_scene_id)
    return FullGameState(
        game=game,
        characters=tuple(storage.world.get_characters(game_id)),
        current_area=storage.world.get_area(game_id, game.current_area_id),
        npcs=tuple(storage.world.get_npcs(game_id, area_id=game.current_area_id)),
        traits=tuple(storage.traits.find_by_game(game_id)),
        relationships=tuple(storage.relationships.find_by_game(game_id)),
        perceived_relationships=tuple(storage.perceived.find_by_game(game_id)),
        pending_evolutions=tuple(storage.evolutions.find_by_game(game_id)),
        current_scene=scene,
        recent_narration=tuple(e.content for e in storage.events.find_recent(game_id, narration_limit)),
    )
