"""Core domain models.

The editorial engine, the repositories and the view filter all operate on
these types. Pydantic is used for validation and serialisation at every data
boundary, including the [0, 1] bound on relationship dimensions.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    return str(uuid4())


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Game, events, editor
# ---------------------------------------------------------------------------

PlaybackMode = Literal["auto", "paused", "stepping", "stopped"]

EditorStatus = Literal["idle", "generating", "editing", "accepting"]

EventType = Literal[
    "narration",
    "party_action",
    "party_dialogue",
    "npc_action",
    "npc_dialogue",
    "environment",
    "dm_injection",
]

GenerationType = Literal[
    "narration",
    "npc_response",
    "environment_reaction",
    "dm_continuation",
]


class Game(BaseModel):
    """A running game. Only the engine and explicit DM mode changes mutate it."""

    id: str = Field(default_factory=new_id)
    player_id: str = ""
    current_area_id: str
    turn: int = Field(default=0, ge=0)
    playback_mode: PlaybackMode = "paused"
    current_scene_id: str | None = None
    created_at: str = Field(default_factory=utcnow)
    updated_at: str = Field(default_factory=utcnow)


class CanonicalEvent(BaseModel):
    """An immutable, DM-approved entry in a game's turn-ordered log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    game_id: str
    turn: int = Field(ge=0)
    event_type: EventType
    content: str
    original_generated: str | None = None  # set only when the DM edited AI output
    speaker: str | None = None
    location_id: str
    witnesses: tuple[str, ...] = ()
    timestamp: str = Field(default_factory=utcnow)


class DMEditorState(BaseModel):
    """The single in-flight review cycle of a game."""

    pending: str | None = None
    edited_content: str | None = None
    status: EditorStatus = "idle"


class GenerationMetadata(BaseModel):
    speaker: str | None = None
    suggested_actions: list[str] = Field(default_factory=list)


class GeneratedContent(BaseModel):
    """A parsed AI proposal awaiting DM disposition."""

    id: str = Field(default_factory=new_id)
    generation_type: GenerationType = "narration"
    event_type: EventType = "narration"
    content: str
    metadata: GenerationMetadata = Field(default_factory=GenerationMetadata)


# ---------------------------------------------------------------------------
# DM actions (discriminated on "type")
# ---------------------------------------------------------------------------

class AcceptAction(BaseModel):
    type: Literal["ACCEPT"] = "ACCEPT"


class EditAction(BaseModel):
    type: Literal["EDIT"] = "EDIT"
    content: str


class RegenerateAction(BaseModel):
    type: Literal["REGENERATE"] = "REGENERATE"
    guidance: str | None = None


class InjectAction(BaseModel):
    type: Literal["INJECT"] = "INJECT"
    content: str
    event_type: EventType | None = None


DMAction = Annotated[
    Union[AcceptAction, EditAction, RegenerateAction, InjectAction],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------

EntityType = Literal["player", "character", "npc", "location"]


class Dimension(str, Enum):
    TRUST = "trust"
    RESPECT = "respect"
    AFFECTION = "affection"
    FEAR = "fear"
    RESENTMENT = "resentment"
    DEBT = "debt"


class ThresholdOperator(str, Enum):
    GE = ">="
    LE = "<="
    GT = ">"
    LT = "<"


DIMENSION_DEFAULTS: dict[Dimension, float] = {
    Dimension.TRUST: 0.5,
    Dimension.RESPECT: 0.5,
    Dimension.AFFECTION: 0.5,
    Dimension.FEAR: 0.0,
    Dimension.RESENTMENT: 0.0,
    Dimension.DEBT: 0.0,
}

Unit = Annotated[float, Field(ge=0.0, le=1.0)]


class Entity(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: EntityType
    id: str


class RelationshipDimensions(BaseModel):
    """The six bounded dimensions. Out-of-range values are rejected, not clamped."""

    trust: Unit = 0.5
    respect: Unit = 0.5
    affection: Unit = 0.5
    fear: Unit = 0.0
    resentment: Unit = 0.0
    debt: Unit = 0.0


class Relationship(RelationshipDimensions):
    """How `from_entity` feels about `to_entity`. B->A is a separate record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    game_id: str
    from_entity: Entity
    to_entity: Entity
    updated_turn: int = 0
    created_at: str = Field(default_factory=utcnow)
    updated_at: str = Field(default_factory=utcnow)

    def value(self, dimension: Dimension) -> float:
        return getattr(self, dimension.value)


class Known(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["known"] = "known"
    value: Unit


class Unknown(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["unknown"] = "unknown"


Perception = Annotated[Union[Known, Unknown], Field(discriminator="kind")]

UNKNOWN = Unknown()


def perceived_or(perception: Known | Unknown, fallback: float) -> float:
    """Value a perceiver believes, or `fallback` when they have no belief."""
    if isinstance(perception, Known):
        return perception.value
    return fallback


class PerceivedRelationship(BaseModel):
    """A character's subjective belief about how a target feels.

    fear, resentment and debt have no perceived counterpart.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    game_id: str
    perceiver_id: str
    target_id: str
    perceived_trust: Perception = UNKNOWN
    perceived_respect: Perception = UNKNOWN
    perceived_affection: Perception = UNKNOWN
    last_updated_turn: int = 0


# ---------------------------------------------------------------------------
# World records
# ---------------------------------------------------------------------------

TraitStatus = Literal["active", "faded", "removed"]


class EntityTrait(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    game_id: str
    entity_type: EntityType
    entity_id: str
    trait: str
    acquired_turn: int = 0
    source_event_id: str | None = None
    status: TraitStatus = "active"


class PixelArtRef(BaseModel):
    path: str
    sprite_name: str


CharacterRole = Literal["player", "member", "companion"]


class Character(BaseModel):
    """A party member (the player's character or a companion)."""

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    character_class: str = "Adventurer"
    role: CharacterRole = "member"
    stats: dict[str, int] = Field(default_factory=dict)
    pixel_art_ref: PixelArtRef | None = None


class NPC(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    current_area_id: str | None = None
    disposition: Literal["hostile", "unfriendly", "neutral", "friendly", "allied"] = "neutral"
    notes: str = ""  # DM-only


class Area(BaseModel):
    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)


SceneStatus = Literal["active", "completed"]


class Scene(BaseModel):
    """A stretch of play. At most one scene per game is current at a time."""

    id: str = Field(default_factory=new_id)
    game_id: str
    name: str | None = None
    description: str | None = None
    scene_type: str | None = None
    mood: str | None = None
    location_id: str | None = None
    stakes: str | None = None  # DM-only
    started_turn: int = 0
    status: SceneStatus = "active"
    completed_turn: int | None = None


# ---------------------------------------------------------------------------
# Evolution (DM-approved relationship/trait changes) and emergence
# ---------------------------------------------------------------------------

EvolutionType = Literal["trait_add", "trait_remove", "relationship_change"]

EvolutionStatus = Literal["pending", "approved", "edited", "refused"]


class PendingEvolution(BaseModel):
    id: str = Field(default_factory=new_id)
    game_id: str
    turn: int
    evolution_type: EvolutionType
    entity: Entity
    reason: str
    source_event_id: str | None = None
    trait: str | None = None
    target: Entity | None = None
    dimension: Dimension | None = None
    old_value: Unit | None = None
    new_value: Unit | None = None
    status: EvolutionStatus = "pending"
    dm_notes: str | None = None
    created_at: str = Field(default_factory=utcnow)
    resolved_at: str | None = None


EmergenceType = Literal["villain", "ally"]


class ContributingFactor(BaseModel):
    dimension: Dimension
    value: float
    threshold: float


class EmergenceNotification(BaseModel):
    """A narrative opportunity noticed after an event was committed."""

    id: str = Field(default_factory=new_id)
    game_id: str
    emergence_type: EmergenceType
    entity: Entity
    toward: Entity
    confidence: Unit
    reason: str
    summary: str
    triggering_event_id: str
    contributing_factors: list[ContributingFactor] = Field(default_factory=list)
    acknowledged: bool = False
    created_at: str = Field(default_factory=utcnow)
