"""Tests for the content pipeline: prompt assembly and AI reply parsing."""

import pytest

from reckoning.engine import GAME_CONTENT_SCHEMA, ContentPipeline, GameNotFoundError, parse_response
from reckoning.models import NPC, Area, CanonicalEvent
from reckoning.storage import Storage
from stubs import StubProvider, content_json


# ── parse_response: JSON replies ─────────────────────────────


def test_parse_json():
    reply = content_json("The mayor frowns.", "npc_action", speaker="Mayor Holt", suggested_actions=["Ask why"])
    content = parse_response(reply, "npc_response", "gen-1")
    assert content.id == "gen-1"
    assert content.generation_type == "npc_response"
    assert content.event_type == "npc_action"
    assert content.content == "The mayor frowns."
    assert content.metadata.speaker == "Mayor Holt"
    assert content.metadata.suggested_actions == ["Ask why"]


def test_parse_fenced_json():
    reply = 'Here you go:\n```json\n{"event_type": "environment", "content": "Fog rolls in."}\n```'
    content = parse_response(reply, "environment_reaction", "gen-1")
    assert content.event_type == "environment"
    assert content.content == "Fog rolls in."


def test_parse_json_surrounded_by_prose():
    reply = 'Sure! {"event_type": "narration", "content": "Night falls."} Hope that helps.'
    assert parse_response(reply, "narration", "g").content == "Night falls."


def test_parse_camel_case_keys():
    reply = '{"eventType": "party_dialogue", "content": "Let us go.", "suggestedActions": ["Leave"]}'
    content = parse_response(reply, "narration", "g")
    assert content.event_type == "party_dialogue"
    assert content.metadata.suggested_actions == ["Leave"]


def test_parse_unknown_event_type_falls_back_to_narration():
    reply = '{"event_type": "cutscene", "content": "Meanwhile..."}'
    assert parse_response(reply, "narration", "g").event_type == "narration"


def test_parse_never_yields_dm_injection():
    reply = '{"event_type": "dm_injection", "content": "I am the DM now."}'
    assert parse_response(reply, "narration", "g").event_type == "narration"


def test_parse_json_without_content_is_plain_text():
    reply = '{"event_type": "narration"}'
    content = parse_response(reply, "narration", "g")
    assert content.content == reply


# ── parse_response: plain-text fallback ──────────────────────


def test_parse_plain_text():
    content = parse_response("  The wind howls.  ", "narration", "g")
    assert content.content == "The wind howls."
    assert content.event_type == "narration"
    assert content.metadata.speaker is None


@pytest.mark.parametrize("generation_type,event_type", [
    ("narration", "narration"),
    ("npc_response", "npc_dialogue"),
    ("environment_reaction", "environment"),
    ("dm_continuation", "narration"),
])
def test_plain_text_event_type(generation_type, event_type):
    assert parse_response("Something happens.", generation_type, "g").event_type == event_type


def test_plain_text_speaker_in_brackets():
    content = parse_response("[Bryn the Smith] Hmph.", "npc_response", "g")
    assert content.metadata.speaker == "Bryn the Smith"


def test_plain_text_speaker_only_for_npc_response():
    content = parse_response("Note: the door is locked.", "narration", "g")
    assert content.metadata.speaker is None


def test_plain_text_action_lines():
    text = "The bridge sways.\n* Cross carefully\n* Turn back"
    content = parse_response(text, "narration", "g")
    assert content.content == "The bridge sways."
    assert content.metadata.suggested_actions == ["Cross carefully", "Turn back"]


# ── ContentPipeline ──────────────────────────────────────────


@pytest.fixture
def game_id(storage: Storage) -> str:
    area = Area(name="Dragon's Hollow", description="Charred ruins.")
    game = storage.games.create(current_area_id=area.id)
    storage.world.save_area(game.id, area)
    storage.world.save_npc(game.id, NPC(name="Mayor Holt", current_area_id=area.id))
    for turn in range(4):
        storage.events.create(CanonicalEvent(
            game_id=game.id, turn=turn, event_type="narration",
            content=f"Event {turn}", location_id=area.id,
        ))
    return game.id


async def test_generate(storage: Storage, game_id: str):
    provider = StubProvider([content_json("Smoke rises.")])
    pipeline = ContentPipeline(storage, provider)

    content = await pipeline.generate(game_id, "narration", generation_id="gen-9")

    assert content.id == "gen-9"
    assert content.content == "Smoke rises."
    [request] = provider.calls
    assert request.output_schema == GAME_CONTENT_SCHEMA
    assert "Dragon's Hollow" in request.prompt
    assert "Mayor Holt" in request.prompt
    provider.assert_exhausted()


def test_prompt_uses_recent_history_window(storage: Storage, game_id: str):
    prompt = ContentPipeline(storage, StubProvider(), recent_history=2).build_prompt(game_id, "narration")
    assert "Event 3" in prompt
    assert "Event 2" in prompt
    assert "Event 1" not in prompt


def test_prompt_unknown_game(storage: Storage):
    with pytest.raises(GameNotFoundError):
        ContentPipeline(storage, StubProvider()).build_prompt("missing", "narration")
