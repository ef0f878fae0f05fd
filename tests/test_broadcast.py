"""Tests for per-game broadcast fan-out and SSE formatting."""

import json

from reckoning.broadcast import (
    Broadcaster,
    EditorStateEvent,
    EditorStateView,
    GenerationError,
    GenerationStarted,
    StateChanged,
    format_sse,
    sse_stream,
)
from reckoning.models import DMEditorState


def test_subscriber_receives_in_order():
    broadcaster = Broadcaster()
    sub = broadcaster.subscribe("g1")
    for i in range(3):
        broadcaster.broadcast("g1", GenerationStarted(generation_id=str(i)))
    received = [sub.queue.get_nowait().generation_id for _ in range(3)]
    assert received == ["0", "1", "2"]


def test_games_are_isolated():
    broadcaster = Broadcaster()
    one = broadcaster.subscribe("g1")
    two = broadcaster.subscribe("g2")
    broadcaster.broadcast("g1", GenerationStarted(generation_id="x"))
    assert one.queue.qsize() == 1
    assert two.queue.empty()


def test_every_subscriber_of_a_game_receives():
    broadcaster = Broadcaster()
    subs = [broadcaster.subscribe("g1") for _ in range(3)]
    broadcaster.broadcast("g1", StateChanged(state={"turn": 1}))
    assert all(s.queue.qsize() == 1 for s in subs)


def test_unsubscribe():
    broadcaster = Broadcaster()
    sub = broadcaster.subscribe("g1")
    assert broadcaster.subscriber_count("g1") == 1
    broadcaster.unsubscribe(sub)
    assert broadcaster.subscriber_count("g1") == 0
    broadcaster.broadcast("g1", GenerationStarted(generation_id="x"))
    assert sub.queue.empty()


def test_broadcast_without_subscribers_is_noop():
    Broadcaster().broadcast("nobody", GenerationStarted(generation_id="x"))


async def test_get_waits_for_event():
    broadcaster = Broadcaster()
    sub = broadcaster.subscribe("g1")
    broadcaster.broadcast("g1", GenerationError(generation_id="x", error="down", retryable=True))
    event = await sub.get()
    assert event.type == "generation_error"


def test_format_sse():
    text = format_sse(GenerationStarted(generation_id="abc"))
    assert text.startswith("event: generation_started\ndata: ")
    assert text.endswith("\n\n")
    payload = json.loads(text.split("data: ", 1)[1])
    assert payload == {"type": "generation_started", "generation_id": "abc"}


def test_editor_state_view_hides_pending_text():
    view = EditorStateView.from_state(DMEditorState(pending="secret draft", status="editing"))
    assert view.pending is True
    assert view.status == "editing"
    assert "secret draft" not in format_sse(EditorStateEvent(editor_state=view))


async def test_sse_stream_yields_events():
    broadcaster = Broadcaster()
    sub = broadcaster.subscribe("g1")
    broadcaster.broadcast("g1", GenerationStarted(generation_id="abc"))

    async def connected() -> bool:
        return False

    stream = sse_stream(broadcaster, sub, connected, poll_interval=0.01)
    text = await stream.__anext__()
    assert text.startswith("event: generation_started\n")
    await stream.aclose()
    assert broadcaster.subscriber_count("g1") == 0


async def test_sse_stream_notices_disconnect_on_quiet_game():
    broadcaster = Broadcaster()
    sub = broadcaster.subscribe("g1")
    checks = []

    async def disconnected_after_first_check() -> bool:
        checks.append(True)
        return len(checks) > 1

    # No event is ever broadcast; the stream must still end.
    received = [text async for text in sse_stream(broadcaster, sub, disconnected_after_first_check, poll_interval=0.01)]

    assert received == []
    assert len(checks) == 2
    assert broadcaster.subscriber_count("g1") == 0
