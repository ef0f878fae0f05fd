"""Pydantic request models for API endpoints."""

from pydantic import BaseModel, Field

from reckoning.models import (
    CharacterRole,
    DMAction,
    Dimension,
    Entity,
    EventType,
    GenerationType,
    Perception,
    PlaybackMode,
    Unit,
)


class NewGameBody(BaseModel):
    player_name: str
    player_description: str | None = None


class NextBody(BaseModel):
    type: GenerationType = "narration"
    dm_guidance: str | None = None


class SubmitBody(BaseModel):
    action: DMAction


class RegenerateBody(BaseModel):
    feedback: str | None = None


class InjectBody(BaseModel):
    content: str
    event_type: EventType = "dm_injection"
    speaker: str | None = None
    witnesses: list[str] = Field(default_factory=list)


class ControlBody(BaseModel):
    mode: PlaybackMode


class RelationshipBody(BaseModel):
    from_entity: Entity
    to_entity: Entity
    updated_turn: int | None = None
    # Range is checked by the repository so that it answers 400, not 422.
    trust: float | None = None
    respect: float | None = None
    affection: float | None = None
    fear: float | None = None
    resentment: float | None = None
    debt: float | None = None

    def values(self) -> dict[Dimension, float]:
        return {d: getattr(self, d.value) for d in Dimension if getattr(self, d.value) is not None}


class PerceivedBody(BaseModel):
    perceiver_id: str
    target_id: str
    updated_turn: int | None = None
    perceived_trust: Perception | None = None
    perceived_respect: Perception | None = None
    perceived_affection: Perception | None = None


class ProposeRelationshipChange(BaseModel):
    from_entity: Entity
    to_entity: Entity
    dimension: Dimension
    change: float
    reason: str
    source_event_id: str | None = None


class ProposeTrait(BaseModel):
    entity: Entity
    trait: str
    reason: str
    remove: bool = False
    source_event_id: str | None = None


class ResolveBody(BaseModel):
    dm_notes: str | None = None


class EditEvolutionBody(BaseModel):
    new_value: Unit | None = None
    trait: str | None = None
    reason: str | None = None
    dm_notes: str | None = None


class CreateScene(BaseModel):
    name: str | None = None
    description: str | None = None
    scene_type: str | None = None
    location_id: str | None = None
    mood: str | None = None
    stakes: str | None = None


class AddMember(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    description: str = Field(default="", max_length=500)
    character_class: str = Field(default="Adventurer", max_length=50)
    role: CharacterRole = "member"
    stats: dict[str, int] = Field(default_factory=dict)


class UpdateMember(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    description: str | None = Field(default=None, max_length=500)
    character_class: str | None = Field(default=None, max_length=50)
    stats: dict[str, int] | None = None


class UpdateHealth(BaseModel):
    character_id: str
    health: int = Field(ge=0)
