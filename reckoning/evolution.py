"""Relationship and trait evolution, gated by DM approval, plus emergence.

Committed events reach this module over a bounded asyncio.Queue owned by
EvolutionWorker. The engine never waits on it: when the queue is full the
event is dropped with a warning.

    EvolutionService   proposals the DM approves, edits or refuses
    EmergenceObserver  notices NPCs whose feelings make them a likely villain
                       or ally after an event they took part in
    EvolutionWorker    drains the queue and stores emergence notifications
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from reckoning.labels import compute_labels
from reckoning.models import (
    DIMENSION_DEFAULTS,
    CanonicalEvent,
    ContributingFactor,
    Dimension,
    EmergenceNotification,
    Entity,
    PendingEvolution,
    Relationship,
    utcnow,
)
from reckoning.storage import Storage, check_dimension_value

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# EvolutionService
# ---------------------------------------------------------------------------

class EvolutionService:
    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    def propose_relationship_change(
        self,
        game_id: str,
        turn: int,
        from_entity: Entity,
        to_entity: Entity,
        dimension: Dimension,
        change: float,
        reason: str,
        source_event_id: str | None = None,
    ) -> PendingEvolution:
        """Queue a dimension change for review.

        The old value comes from the stored relationship (or the defaults for
        a new one); the proposed value is old + change, bounded to [0, 1].
        """
        dimension = Dimension(dimension)
        existing = self._storage.relationships.find_between(game_id, from_entity, to_entity)
        old = existing.value(dimension) if existing else DIMENSION_DEFAULTS[dimension]
        new = max(0.0, min(1.0, old + change))
        return self._storage.evolutions.save(PendingEvolution(
            game_id=game_id,
            turn=turn,
            evolution_type="relationship_change",
            entity=from_entity,
            target=to_entity,
            dimension=dimension,
            old_value=old,
            new_value=new,
            reason=reason,
            source_event_id=source_event_id,
        ))

    def propose_trait(
        self,
        game_id: str,
        turn: int,
        entity: Entity,
        trait: str,
        reason: str,
        remove: bool = False,
        source_event_id: str | None = None,
    ) -> PendingEvolution:
        return self._storage.evolutions.save(PendingEvolution(
            game_id=game_id,
            turn=turn,
            evolution_type="trait_remove" if remove else "trait_add",
            entity=entity,
            trait=trait,
            reason=reason,
            source_event_id=source_event_id,
        ))

    def _require_pending(self, game_id: str, evolution_id: str) -> PendingEvolution:
        evolution = self._storage.evolutions.find_by_id(game_id, evolution_id)
        if evolution is None:
            raise LookupError(f"Pending evolution not found: {evolution_id}")
        if evolution.status != "pending":
            raise ValueError(f"Evolution {evolution_id} is already {evolution.status}")
        return evolution

    def _apply(self, evolution: PendingEvolution) -> None:
        if evolution.evolution_type == "relationship_change":
            self._storage.relationships.upsert(
                evolution.game_id,
                evolution.entity,
                evolution.target,
                updated_turn=evolution.turn,
                values={evolution.dimension: evolution.new_value},
            )
        elif evolution.evolution_type == "trait_add":
            self._storage.traits.add(
                evolution.game_id,
                evolution.entity.type,
                evolution.entity.id,
                evolution.trait,
                turn=evolution.turn,
                source_event_id=evolution.source_event_id,
            )
        else:
            self._storage.traits.remove(
                evolution.game_id, evolution.entity.type, evolution.entity.id, evolution.trait
            )

    def _resolve(self, evolution: PendingEvolution, status: str, dm_notes: str | None) -> PendingEvolution:
        resolved = evolution.model_copy(update={
            "status": status, "dm_notes": dm_notes, "resolved_at": utcnow(),
        })
        logger.info("Evolution %s for game %s %s", evolution.id, evolution.game_id, status)
        return self._storage.evolutions.save(resolved)

    def approve(self, game_id: str, evolution_id: str, dm_notes: str | None = None) -> PendingEvolution:
        evolution = self._require_pending(game_id, evolution_id)
        self._apply(evolution)
        return self._resolve(evolution, "approved", dm_notes)

    def edit(
        self,
        game_id: str,
        evolution_id: str,
        new_value: float | None = None,
        trait: str | None = None,
        reason: str | None = None,
        dm_notes: str | None = None,
    ) -> PendingEvolution:
        """Apply the evolution with DM changes and mark it edited."""
        evolution = self._require_pending(game_id, evolution_id)
        changes: dict[str, Any] = {}
        if new_value is not None:
            if evolution.dimension is None:
                raise ValueError("new_value only applies to relationship changes")
            check_dimension_value(evolution.dimension, new_value)
            changes["new_value"] = new_value
        if trait is not None:
            changes["trait"] = trait
        if reason is not None:
            changes["reason"] = reason
        evolution = evolution.model_copy(update=changes)
        self._apply(evolution)
        return self._resolve(evolution, "edited", dm_notes)

    def refuse(self, game_id: str, evolution_id: str, dm_notes: str | None = None) -> PendingEvolution:
        evolution = self._require_pending(game_id, evolution_id)
        return self._resolve(evolution, "refused", dm_notes)

    def pending(self, game_id: str) -> list[PendingEvolution]:
        return self._storage.evolutions.find_by_game(game_id)


# ---------------------------------------------------------------------------
# EmergenceObserver
# ---------------------------------------------------------------------------

_DEFAULT_THRESHOLDS: dict[str, float] = {
    "villain_fear": 0.6,
    "villain_resentment": 0.5,
    "ally_trust": 0.6,
    "ally_respect": 0.6,
    "ally_affection": 0.5,
    "high": 0.8,
    "medium": 0.6,
}

# Below this an opportunity is not worth telling the DM about.
_MIN_CONFIDENCE = 0.3


def _above(value: float, threshold: float) -> float:
    """0 at the threshold, 1 at the top of the range."""
    if value < threshold:
        return 0.0
    return min(1.0, (value - threshold) / (1.0 - threshold))


class EmergenceObserver:
    def __init__(self, storage: Storage, thresholds: dict[str, float] | None = None) -> None:
        self._storage = storage
        self.thresholds = {**_DEFAULT_THRESHOLDS, **(thresholds or {})}

    def _involved_npcs(self, event: CanonicalEvent) -> list[Entity]:
        npcs = self._storage.world.get_npcs(event.game_id)
        ids = set(event.witnesses)
        if event.speaker:
            ids.update(n.id for n in npcs if event.speaker in (n.id, n.name))
        return [Entity(type="npc", id=n.id) for n in npcs if n.id in ids]

    def on_event_committed(self, event: CanonicalEvent) -> list[EmergenceNotification]:
        found = []
        for npc in self._involved_npcs(event):
            for rel in self._storage.relationships.find_by_entity(event.game_id, npc):
                if rel.from_entity != npc:
                    continue
                for check in (self.check_villain, self.check_ally):
                    notification = check(rel, event)
                    if notification is not None:
                        found.append(notification)
        return found

    def check_villain(self, rel: Relationship, event: CanonicalEvent) -> EmergenceNotification | None:
        t = self.thresholds
        if rel.fear < t["villain_fear"] or rel.resentment < t["villain_resentment"]:
            return None
        low_trust = rel.trust < 0.3
        low_respect = rel.respect < 0.4
        factors = [
            ContributingFactor(dimension=Dimension.FEAR, value=rel.fear, threshold=t["villain_fear"]),
            ContributingFactor(
                dimension=Dimension.RESENTMENT, value=rel.resentment, threshold=t["villain_resentment"]
            ),
        ]
        if low_trust:
            factors.append(ContributingFactor(dimension=Dimension.TRUST, value=rel.trust, threshold=0.3))
        if low_respect:
            factors.append(ContributingFactor(dimension=Dimension.RESPECT, value=rel.respect, threshold=0.4))

        confidence = (_above(rel.fear, t["villain_fear"]) + _above(rel.resentment, t["villain_resentment"])) / 2
        if rel.fear >= t["high"]:
            confidence += 0.1
        if rel.resentment >= t["high"]:
            confidence += 0.1
        if low_trust:
            confidence += 0.1
        if rel.respect >= 0.5:
            confidence -= 0.15
        if rel.affection >= 0.4:
            confidence -= 0.1
        confidence = max(0.0, min(1.0, confidence))
        if confidence < _MIN_CONFIDENCE:
            return None

        parts = [
            "deeply fears the party" if rel.fear >= t["high"] else "fears the party",
            "harbors deep resentment" if rel.resentment >= t["high"] else "harbors resentment",
        ]
        if low_trust and low_respect:
            parts.append("with no trust or respect remaining")
        elif low_trust:
            parts.append("with broken trust")
        elif low_respect:
            parts.append("with no respect")
        return self._notification(
            "villain", rel, event, confidence, factors,
            f"NPC {', '.join(parts)}. May seek revenge or opposition.",
        )

    def check_ally(self, rel: Relationship, event: CanonicalEvent) -> EmergenceNotification | None:
        t = self.thresholds
        trust_respect = rel.trust >= t["ally_trust"] and rel.respect >= t["ally_respect"]
        friendship = rel.affection >= t["ally_affection"] and rel.trust >= 0.5
        debt = rel.debt >= 0.6 and rel.respect >= 0.5
        if not (trust_respect or friendship or debt):
            return None
        if rel.fear >= 0.5 or rel.resentment >= 0.5:
            return None

        factors: list[ContributingFactor] = []
        scores: list[float] = []
        paths: list[str] = []
        if trust_respect:
            factors.append(ContributingFactor(dimension=Dimension.TRUST, value=rel.trust, threshold=t["ally_trust"]))
            factors.append(
                ContributingFactor(dimension=Dimension.RESPECT, value=rel.respect, threshold=t["ally_respect"])
            )
            scores.append((_above(rel.trust, t["ally_trust"]) + _above(rel.respect, t["ally_respect"])) / 2)
            deep = rel.trust >= t["high"] and rel.respect >= t["high"]
            paths.append("has earned deep trust and respect" if deep else "has earned trust and respect")
        if friendship:
            factors.append(
                ContributingFactor(dimension=Dimension.AFFECTION, value=rel.affection, threshold=t["ally_affection"])
            )
            scores.append(_above(rel.affection, t["ally_affection"]))
            paths.append("has formed a strong bond" if rel.affection >= t["high"] else "has befriended them")
        if debt:
            factors.append(ContributingFactor(dimension=Dimension.DEBT, value=rel.debt, threshold=0.6))
            scores.append(_above(rel.debt, 0.6) * 0.8)
            paths.append("feels indebted to the party")

        confidence = sum(scores) / len(scores)
        if len(scores) >= 2:
            confidence += 0.1
        if len(scores) >= 3:
            confidence += 0.1
        if rel.fear >= 0.3:
            confidence -= 0.15
        if rel.resentment >= 0.3:
            confidence -= 0.15
        confidence = max(0.0, min(1.0, confidence))
        if confidence < _MIN_CONFIDENCE:
            return None
        return self._notification(
            "ally", rel, event, confidence, factors,
            f"NPC {' and '.join(paths)}. May offer aid or join the party.",
        )

    def _notification(self, kind, rel, event, confidence, factors, reason) -> EmergenceNotification:
        return EmergenceNotification(
            game_id=event.game_id,
            emergence_type=kind,
            entity=rel.from_entity,
            toward=rel.to_entity,
            confidence=confidence,
            reason=reason,
            summary=compute_labels(rel).summary,
            triggering_event_id=event.id,
            contributing_factors=factors,
        )


# ---------------------------------------------------------------------------
# EvolutionWorker
# ---------------------------------------------------------------------------

class EvolutionWorker:
    """Consumes committed events from a bounded queue.

    submit_event() is the engine's event sink. start() and stop() are called
    from the application lifespan.
    """

    def __init__(self, storage: Storage, observer: EmergenceObserver, queue_size: int = 100) -> None:
        self._storage = storage
        self._observer = observer
        self._queue: asyncio.Queue[CanonicalEvent] = asyncio.Queue(maxsize=queue_size)
        self._task: asyncio.Task | None = None

    @property
    def backlog(self) -> int:
        return self._queue.qsize()

    def submit_event(self, event: CanonicalEvent) -> bool:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Evolution queue full; dropped event %s for game %s", event.id, event.game_id)
            return False
        return True

    def process(self, event: CanonicalEvent) -> list[EmergenceNotification]:
        notifications = self._observer.on_event_committed(event)
        for n in notifications:
            self._storage.emergence.create(n)
            logger.info(
                "Emergence %s: %s toward %s (confidence %.2f)",
                n.emergence_type, n.entity.id, n.toward.id, n.confidence,
            )
        return notifications

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                self.process(event)
            except Exception:
                logger.exception("Evolution processing failed for event %s", event.id)
            finally:
                self._queue.task_done()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def join(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()
