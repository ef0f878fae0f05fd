"""Per-game fan-out of typed state events to subscribed viewers.

Each subscriber owns an unbounded asyncio.Queue. broadcast() puts the event
on the queue of every subscriber of that game, so each viewer receives its
game's events in the order they were broadcast and never sees another
game's events.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

from reckoning.models import DMEditorState, EventType, GenerationMetadata

logger = logging.getLogger(__name__)


class GenerationStarted(BaseModel):
    type: Literal["generation_started"] = "generation_started"
    generation_id: str


class GenerationComplete(BaseModel):
    type: Literal["generation_complete"] = "generation_complete"
    generation_id: str
    content: str
    event_type: EventType
    metadata: GenerationMetadata | None = None


class GenerationError(BaseModel):
    type: Literal["generation_error"] = "generation_error"
    generation_id: str
    error: str
    retryable: bool


class StateChanged(BaseModel):
    type: Literal["state_changed"] = "state_changed"
    state: dict[str, Any]


class EditorStateView(BaseModel):
    """Wire shape of the editor state; `pending` only says whether content waits."""

    pending: bool
    edited_content: str | None = None
    status: str

    @classmethod
    def from_state(cls, state: DMEditorState) -> EditorStateView:
        return cls(
            pending=state.pending is not None,
            edited_content=state.edited_content,
            status=state.status,
        )


class EditorStateEvent(BaseModel):
    type: Literal["editor_state"] = "editor_state"
    editor_state: EditorStateView


BroadcastEvent = Annotated[
    Union[GenerationStarted, GenerationComplete, GenerationError, StateChanged, EditorStateEvent],
    Field(discriminator="type"),
]


def format_sse(event: BaseModel) -> str:
    """Render an event in server-sent-events wire form."""
    return f"event: {event.type}\ndata: {event.model_dump_json()}\n\n"


class Subscription:
    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        self.queue: asyncio.Queue[BaseModel] = asyncio.Queue()

    async def get(self) -> BaseModel:
        return await self.queue.get()


class Broadcaster:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscription]] = {}

    def subscribe(self, game_id: str) -> Subscription:
        sub = Subscription(game_id)
        self._subscribers.setdefault(game_id, []).append(sub)
        logger.debug("subscribe game=%s subscribers=%d", game_id, len(self._subscribers[game_id]))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.game_id, [])
        if sub in subs:
            subs.remove(sub)
        if not subs:
            self._subscribers.pop(sub.game_id, None)

    def subscriber_count(self, game_id: str) -> int:
        return len(self._subscribers.get(game_id, []))

    def broadcast(self, game_id: str, event: BaseModel) -> None:
        for sub in self._subscribers.get(game_id, []):
            sub.queue.put_nowait(event)


async def sse_stream(
    broadcaster: Broadcaster,
    sub: Subscription,
    is_disconnected: Callable[[], Awaitable[bool]],
    poll_interval: float = 1.0,
) -> AsyncIterator[str]:
    """Yield a subscription's events as SSE text until the client goes away.

    The wait for the next event is bounded by poll_interval so a quiet game
    still notices the disconnect. The subscription is always removed.
    """
    try:
        while not await is_disconnected():
            try:
                event = await asyncio.wait_for(sub.get(), timeout=poll_interval)
            except asyncio.TimeoutError:
                continue
            yield format_sse(event)
    finally:
        broadcaster.unsubscribe(sub)
