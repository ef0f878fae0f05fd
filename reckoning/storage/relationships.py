"""Directional relationship records and the perceived overlay.

A relationship is identified by (game_id, from_entity, to_entity); A->B and
B->A are independent. Every write is validated against [0.0, 1.0] before it
reaches disk: out-of-range values raise ValueError and are never clamped.
"""

import operator
from collections.abc import Callable
from typing import Any

from reckoning.models import (
    DIMENSION_DEFAULTS,
    Dimension,
    Entity,
    Known,
    PerceivedRelationship,
    Relationship,
    ThresholdOperator,
    Unknown,
    utcnow,
)

from .core import JsonStore

_RELATIONSHIPS = "relationships"
_PERCEIVED = "perceived_relationships"

_OPERATORS: dict[ThresholdOperator, Callable[[float, float], bool]] = {
    ThresholdOperator.GE: operator.ge,
    ThresholdOperator.LE: operator.le,
    ThresholdOperator.GT: operator.gt,
    ThresholdOperator.LT: operator.lt,
}


def check_dimension_value(dimension: Dimension, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(
            f"Dimension value must be between 0.0 and 1.0, got: {value} ({dimension.value})"
        )


class RelationshipRepository:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    def _load(self, game_id: str) -> list[Relationship]:
        return [
            Relationship.model_validate(row)
            for row in self._store.read_collection(game_id, _RELATIONSHIPS)
        ]

    def _save(self, game_id: str, relationships: list[Relationship]) -> None:
        self._store.write_collection(
            game_id, _RELATIONSHIPS, [r.model_dump(mode="json") for r in relationships]
        )

    def upsert(
        self,
        game_id: str,
        from_entity: Entity,
        to_entity: Entity,
        updated_turn: int,
        values: dict[Dimension, float] | None = None,
    ) -> Relationship:
        """Create or update the (from, to) record.

        Dimensions missing from `values` keep their stored value, or the
        default for a new record.
        """
        values = {Dimension(k): v for k, v in (values or {}).items()}
        for dimension, value in values.items():
            check_dimension_value(dimension, value)

        relationships = self._load(game_id)
        now = utcnow()
        for i, existing in enumerate(relationships):
            if existing.from_entity == from_entity and existing.to_entity == to_entity:
                data = existing.model_dump()
                data.update({d.value: v for d, v in values.items()})
                data["updated_turn"] = updated_turn
                data["updated_at"] = now
                updated = Relationship.model_validate(data)
                relationships[i] = updated
                self._save(game_id, relationships)
                return updated

        fields: dict[str, Any] = {d.value: DIMENSION_DEFAULTS[d] for d in Dimension}
        fields.update({d.value: v for d, v in values.items()})
        created = Relationship(
            game_id=game_id,
            from_entity=from_entity,
            to_entity=to_entity,
            updated_turn=updated_turn,
            **fields,
        )
        relationships.append(created)
        self._save(game_id, relationships)
        return created

    def find_between(self, game_id: str, from_entity: Entity, to_entity: Entity) -> Relationship | None:
        for r in self._load(game_id):
            if r.from_entity == from_entity and r.to_entity == to_entity:
                return r
        return None

    def find_by_id(self, game_id: str, relationship_id: str) -> Relationship | None:
        for r in self._load(game_id):
            if r.id == relationship_id:
                return r
        return None

    def find_by_entity(self, game_id: str, entity: Entity) -> list[Relationship]:
        """All relationships with `entity` on either end."""
        return [r for r in self._load(game_id) if entity in (r.from_entity, r.to_entity)]

    def find_by_game(self, game_id: str) -> list[Relationship]:
        return self._load(game_id)

    def find_by_threshold(
        self,
        game_id: str,
        dimension: Dimension,
        threshold: float,
        op: ThresholdOperator = ThresholdOperator.GE,
    ) -> list[Relationship]:
        compare = _OPERATORS[ThresholdOperator(op)]
        dimension = Dimension(dimension)
        return [r for r in self._load(game_id) if compare(r.value(dimension), threshold)]

    def update_dimension(
        self,
        game_id: str,
        relationship_id: str,
        dimension: Dimension,
        value: float,
        updated_turn: int,
    ) -> Relationship | None:
        """Set one dimension. Returns None when the record does not exist."""
        dimension = Dimension(dimension)
        check_dimension_value(dimension, value)
        relationships = self._load(game_id)
        for i, existing in enumerate(relationships):
            if existing.id == relationship_id:
                data = existing.model_dump()
                data[dimension.value] = value
                data["updated_turn"] = updated_turn
                data["updated_at"] = utcnow()
                relationships[i] = Relationship.model_validate(data)
                self._save(game_id, relationships)
                return relationships[i]
        return None

    def delete(self, game_id: str, relationship_id: str) -> None:
        self._save(game_id, [r for r in self._load(game_id) if r.id != relationship_id])

    def delete_by_entity(self, game_id: str, entity: Entity) -> None:
        self._save(
            game_id,
            [r for r in self._load(game_id) if entity not in (r.from_entity, r.to_entity)],
        )

    def delete_by_game(self, game_id: str) -> None:
        self._save(game_id, [])


# Sentinel for "leave this perceived dimension as it is" in upserts.
_KEEP = object()


class PerceivedRelationshipRepository:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    def _load(self, game_id: str) -> list[PerceivedRelationship]:
        return [
            PerceivedRelationship.model_validate(row)
            for row in self._store.read_collection(game_id, _PERCEIVED)
        ]

    def _save(self, game_id: str, rows: list[PerceivedRelationship]) -> None:
        self._store.write_collection(
            game_id, _PERCEIVED, [p.model_dump(mode="json") for p in rows]
        )

    def upsert(
        self,
        game_id: str,
        perceiver_id: str,
        target_id: str,
        last_updated_turn: int,
        perceived_trust: Known | Unknown | Any = _KEEP,
        perceived_respect: Known | Unknown | Any = _KEEP,
        perceived_affection: Known | Unknown | Any = _KEEP,
    ) -> PerceivedRelationship:
        """Create or update a perceiver's beliefs about a target.

        Omitted dimensions keep their stored value (Unknown for a new record);
        pass Unknown() explicitly to forget a belief.
        """
        given = {
            "perceived_trust": perceived_trust,
            "perceived_respect": perceived_respect,
            "perceived_affection": perceived_affection,
        }
        updates = {k: v for k, v in given.items() if v is not _KEEP}

        rows = self._load(game_id)
        for i, existing in enumerate(rows):
            if existing.perceiver_id == perceiver_id and existing.target_id == target_id:
                data = existing.model_dump()
                data.update({k: _as_perception(v) for k, v in updates.items()})
                data["last_updated_turn"] = last_updated_turn
                rows[i] = PerceivedRelationship.model_validate(data)
                self._save(game_id, rows)
                return rows[i]

        created = PerceivedRelationship.model_validate({
            "game_id": game_id,
            "perceiver_id": perceiver_id,
            "target_id": target_id,
            "last_updated_turn": last_updated_turn,
            **{k: _as_perception(v) for k, v in updates.items()},
        })
        rows.append(created)
        self._save(game_id, rows)
        return created

    def find_by_perceiver_and_target(
        self, game_id: str, perceiver_id: str, target_id: str
    ) -> PerceivedRelationship | None:
        for p in self._load(game_id):
            if p.perceiver_id == perceiver_id and p.target_id == target_id:
                return p
        return None

    def find_by_perceiver(self, game_id: str, perceiver_id: str) -> list[PerceivedRelationship]:
        return [p for p in self._load(game_id) if p.perceiver_id == perceiver_id]

    def find_by_game(self, game_id: str) -> list[PerceivedRelationship]:
        return self._load(game_id)

    def delete(self, game_id: str, perceived_id: str) -> None:
        self._save(game_id, [p for p in self._load(game_id) if p.id != perceived_id])

    def delete_by_perceiver(self, game_id: str, perceiver_id: str) -> None:
        self._save(game_id, [p for p in self._load(game_id) if p.perceiver_id != perceiver_id])


def _as_perception(value: Any) -> dict[str, Any]:
    if isinstance(value, (Known, Unknown)):
        return value.model_dump()
    if isinstance(value, dict):
        return value
    raise TypeError(f"Perceived dimension must be Known or Unknown, got {type(value).__name__}")
