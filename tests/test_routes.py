"""HTTP API tests through FastAPI's TestClient.

Each test gets its own data directory and provider. MockProvider gives
deterministic JSON content; StubProvider is used where a test needs to
script replies or failures.
"""

from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.app import create_app
from reckoning.llm import AIError, MockProvider
from reckoning.models import EmergenceNotification, Entity
from stubs import StubProvider, content_json


@pytest.fixture
def client(data_dir: Path) -> Iterator[TestClient]:
    with TestClient(create_app(data_dir, provider=MockProvider())) as c:
        yield c


def _new_game(client: TestClient, name: str = "Aria") -> dict:
    resp = client.post("/api/game/new", json={"player_name": name})
    assert resp.status_code == 200
    return resp.json()


def _ctx(client: TestClient):
    return client.app.state.ctx


# ---------------------------------------------------------------------------
# Health and settings
# ---------------------------------------------------------------------------

def test_health(client: TestClient):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_settings_roundtrip(client: TestClient):
    assert client.get("/api/settings").json()["generation_timeout"] == 60.0
    resp = client.patch("/api/settings", json={"ai": {"provider_url": "http://localhost:5001"}})
    assert resp.json()["ai"]["provider_url"] == "http://localhost:5001"
    assert client.get("/api/settings").json()["ai"]["provider_format"] == "koboldcpp"


# ---------------------------------------------------------------------------
# Game lifecycle and editorial cycle
# ---------------------------------------------------------------------------

def test_new_game(client: TestClient):
    game = _new_game(client)
    assert game["turn"] == 0
    assert game["playback_mode"] == "paused"
    assert game["player_id"]
    assert [g["id"] for g in client.get("/api/game/list").json()] == [game["id"]]


def test_get_game(client: TestClient):
    game = _new_game(client)
    data = client.get(f"/api/game/{game['id']}").json()
    assert data["game"]["id"] == game["id"]
    assert data["editor_state"] == {"pending": False, "edited_content": None, "status": "idle"}


def test_unknown_game_is_404(client: TestClient):
    resp = client.get("/api/game/nope")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Game not found: nope"
    assert client.post("/api/game/nope/next").status_code == 404
    assert client.get("/api/game/nope/events").status_code == 404
    assert client.get("/api/game/nope/history").status_code == 404


def test_next_then_accept(client: TestClient):
    gid = _new_game(client)["id"]

    data = client.post(f"/api/game/{gid}/next").json()
    assert data["pending"]["content"].startswith("The ancient stone walls")
    assert data["editor_state"]["pending"] is True
    assert data["editor_state"]["status"] == "editing"

    resp = client.post(f"/api/game/{gid}/submit", json={"action": {"type": "ACCEPT"}})
    assert resp.status_code == 200
    body = resp.json()
    assert body["event"]["turn"] == 0
    assert body["game"]["turn"] == 1
    assert len(client.get(f"/api/game/{gid}/history").json()) == 1
    assert client.get(f"/api/game/{gid}/pending").json()["pending"] is None


def test_next_while_editing_is_409(client: TestClient):
    gid = _new_game(client)["id"]
    client.post(f"/api/game/{gid}/next")
    assert client.post(f"/api/game/{gid}/next").status_code == 409


def test_accept_without_content_is_409(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.post(f"/api/game/{gid}/submit", json={"action": {"type": "ACCEPT"}})
    assert resp.status_code == 409
    assert resp.json()["detail"] == "No content to accept"


def test_edit_without_content_is_409(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.post(f"/api/game/{gid}/submit", json={"action": {"type": "EDIT", "content": "x"}})
    assert resp.status_code == 409


def test_unknown_action_rejected(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.post(f"/api/game/{gid}/submit", json={"action": {"type": "DELETE"}})
    assert resp.status_code == 422


def test_edit_then_accept(client: TestClient):
    gid = _new_game(client)["id"]
    original = client.post(f"/api/game/{gid}/next").json()["pending"]["content"]
    client.post(f"/api/game/{gid}/submit", json={"action": {"type": "EDIT", "content": "My version."}})
    event = client.post(f"/api/game/{gid}/submit", json={"action": {"type": "ACCEPT"}}).json()["event"]
    assert event["content"] == "My version."
    assert event["original_generated"] == original


def test_regenerate_with_feedback(data_dir: Path):
    provider = StubProvider([content_json("First."), content_json("Second.")])
    with TestClient(create_app(data_dir, provider=provider)) as client:
        gid = _new_game(client)["id"]
        client.post(f"/api/game/{gid}/next")
        data = client.post(f"/api/game/{gid}/regenerate", json={"feedback": "More menace"}).json()
    assert data["pending"]["content"] == "Second."
    assert "More menace" in provider.calls[1].prompt


def test_provider_failure_leaves_editor_idle(data_dir: Path):
    provider = StubProvider([AIError("UNAVAILABLE", "Cannot connect", retryable=True)])
    with TestClient(create_app(data_dir, provider=provider)) as client:
        gid = _new_game(client)["id"]
        data = client.post(f"/api/game/{gid}/next").json()
    assert data["pending"] is None
    assert data["editor_state"]["status"] == "idle"


def test_inject(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.post(f"/api/game/{gid}/inject", json={"content": "A storm breaks."})
    body = resp.json()
    assert body["event"]["event_type"] == "dm_injection"
    assert body["game"]["turn"] == 1


def test_inject_invalid_event_type(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.post(f"/api/game/{gid}/inject", json={"content": "x", "event_type": "gossip"})
    assert resp.status_code == 422


def test_control_and_step(client: TestClient):
    gid = _new_game(client)["id"]
    assert client.post(f"/api/game/{gid}/control", json={"mode": "stopped"}).json()["playback_mode"] == "stopped"
    assert client.post(f"/api/game/{gid}/step").json()["stepped"] is False

    client.post(f"/api/game/{gid}/control", json={"mode": "stepping"})
    data = client.post(f"/api/game/{gid}/step").json()
    assert data["stepped"] is True
    assert data["editor_state"]["status"] == "editing"


def test_auto_mode_chains(client: TestClient):
    gid = _new_game(client)["id"]
    client.post(f"/api/game/{gid}/control", json={"mode": "auto"})
    client.post(f"/api/game/{gid}/next")
    client.post(f"/api/game/{gid}/submit", json={"action": {"type": "ACCEPT"}})
    assert client.get(f"/api/game/{gid}/pending").json()["editor_state"]["status"] == "editing"


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------

def _seed_relationship(client: TestClient, gid: str, player_id: str) -> None:
    resp = client.put(f"/api/game/{gid}/relationships", json={
        "from_entity": {"type": "character", "id": player_id},
        "to_entity": {"type": "npc", "id": "mayor"},
        "trust": 0.2, "fear": 0.7, "resentment": 0.4,
    })
    assert resp.status_code == 200


def test_views(client: TestClient):
    game = _new_game(client)
    gid, player_id = game["id"], game["player_id"]
    _seed_relationship(client, gid, player_id)
    client.post(f"/api/game/{gid}/inject", json={"content": "You arrive."})

    dm = client.get(f"/api/view/{gid}/dm").json()
    assert dm["relationships"][0]["fear"] == 0.7

    party = client.get(f"/api/view/{gid}/party").json()
    assert set(party) == {"narration", "avatars", "scene", "area"}
    assert party["narration"] == ["You arrive."]

    player = client.get(f"/api/view/{gid}/player/{player_id}").json()
    [rel] = player["relationships"]
    assert rel["perceived_trust"] == 0.2
    assert "fear" not in rel
    assert "resentment" not in rel


def test_player_view_unknown_character(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.get(f"/api/view/{gid}/player/ghost")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Character not found"


def test_view_unknown_game(client: TestClient):
    assert client.get("/api/view/nope/party").status_code == 404


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------

def test_relationship_out_of_range_is_400(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.put(f"/api/game/{gid}/relationships", json={
        "from_entity": {"type": "npc", "id": "mayor"},
        "to_entity": {"type": "player", "id": "aria"},
        "trust": 1.5,
    })
    assert resp.status_code == 400
    assert "between 0.0 and 1.0" in resp.json()["detail"]
    assert client.get(f"/api/game/{gid}/relationships").json() == []


def test_relationship_labels(client: TestClient):
    gid = _new_game(client)["id"]
    client.put(f"/api/game/{gid}/relationships", json={
        "from_entity": {"type": "npc", "id": "mayor"},
        "to_entity": {"type": "player", "id": "aria"},
        "trust": 0.1, "resentment": 0.8,
    })
    [labels] = client.get(f"/api/game/{gid}/relationships/labels").json()
    assert labels["primary"] == "hostile"
    assert labels["short_label"] == "Hostile"
    assert labels["valence"] == "negative"
    assert labels["summary"] == "Openly hostile"


def test_perceived_overlay_in_player_view(client: TestClient):
    game = _new_game(client)
    gid, player_id = game["id"], game["player_id"]
    _seed_relationship(client, gid, player_id)
    resp = client.put(f"/api/game/{gid}/perceived", json={
        "perceiver_id": player_id,
        "target_id": "mayor",
        "perceived_trust": {"kind": "known", "value": 0.9},
    })
    assert resp.json()["perceived_respect"] == {"kind": "unknown"}

    [rel] = client.get(f"/api/view/{gid}/player/{player_id}").json()["relationships"]
    assert rel["perceived_trust"] == 0.9


# ---------------------------------------------------------------------------
# Evolution and emergence
# ---------------------------------------------------------------------------

def test_evolution_approve_flow(client: TestClient):
    gid = _new_game(client)["id"]
    evolution = client.post(f"/api/evolution/{gid}/relationship", json={
        "from_entity": {"type": "npc", "id": "mayor"},
        "to_entity": {"type": "player", "id": "aria"},
        "dimension": "trust",
        "change": 0.2,
        "reason": "Returned the ledger",
    }).json()
    assert evolution["status"] == "pending"
    assert [e["id"] for e in client.get(f"/api/evolution/{gid}").json()] == [evolution["id"]]

    approved = client.post(f"/api/evolution/{gid}/{evolution['id']}/approve", json={"dm_notes": "ok"}).json()
    assert approved["status"] == "approved"
    assert client.get(f"/api/evolution/{gid}").json() == []
    [rel] = client.get(f"/api/game/{gid}/relationships").json()
    assert rel["trust"] == pytest.approx(0.7)


def test_evolution_edit_and_refuse(client: TestClient):
    gid = _new_game(client)["id"]
    trait = client.post(f"/api/evolution/{gid}/trait", json={
        "entity": {"type": "npc", "id": "mayor"}, "trait": "greedy", "reason": "Bribe",
    }).json()
    edited = client.post(f"/api/evolution/{gid}/{trait['id']}/edit", json={"trait": "corrupt"}).json()
    assert edited["status"] == "edited"
    assert edited["trait"] == "corrupt"

    again = client.post(f"/api/evolution/{gid}/{trait['id']}/refuse")
    assert again.status_code == 400


def test_evolution_unknown_is_404(client: TestClient):
    gid = _new_game(client)["id"]
    assert client.post(f"/api/evolution/{gid}/nope/approve").status_code == 404


def test_emergence_list_and_acknowledge(client: TestClient):
    gid = _new_game(client)["id"]
    notification = _ctx(client).storage.emergence.create(EmergenceNotification(
        game_id=gid, emergence_type="villain",
        entity=Entity(type="npc", id="mayor"), toward=Entity(type="player", id="aria"),
        confidence=0.8, reason="Fears the party", summary="Openly hostile", triggering_event_id="e1",
    ))
    listed = client.get(f"/api/evolution/{gid}/emergence").json()
    assert [n["id"] for n in listed] == [notification.id]

    resp = client.post(f"/api/evolution/{gid}/emergence/{notification.id}/acknowledge")
    assert resp.json()["acknowledged"] is True
    assert client.get(f"/api/evolution/{gid}/emergence").json() == []
    assert client.post(f"/api/evolution/{gid}/emergence/nope/acknowledge").status_code == 404


# ---------------------------------------------------------------------------
# Scenes
# ---------------------------------------------------------------------------

def test_scene_lifecycle(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.post(f"/api/scene/{gid}", json={"name": "Ambush", "mood": "tense", "stakes": "The cart"})
    assert resp.status_code == 201
    scene = resp.json()
    assert scene["status"] == "active"
    assert client.get(f"/api/scene/{gid}/current").json() == {"scene": None}

    data = client.post(f"/api/scene/{gid}/{scene['id']}/start").json()
    assert data["game"]["current_scene_id"] == scene["id"]
    assert client.get(f"/api/scene/{gid}/current").json()["scene"]["name"] == "Ambush"
    assert client.get(f"/api/view/{gid}/party").json()["scene"]["name"] == "Ambush"

    data = client.post(f"/api/scene/{gid}/{scene['id']}/complete").json()
    assert data["scene"]["status"] == "completed"
    assert data["game"]["current_scene_id"] is None
    assert [s["name"] for s in client.get(f"/api/scene/{gid}").json()] == ["Ambush"]


def test_scene_errors(client: TestClient):
    gid = _new_game(client)["id"]
    assert client.post(f"/api/scene/{gid}/nope/start").status_code == 404
    assert client.post("/api/scene/nope", json={"name": "x"}).status_code == 404
    scene = client.post(f"/api/scene/{gid}", json={"name": "Ambush"}).json()
    client.post(f"/api/scene/{gid}/{scene['id']}/complete")
    resp = client.post(f"/api/scene/{gid}/{scene['id']}/start")
    assert resp.status_code == 400
    assert "already completed" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Party
# ---------------------------------------------------------------------------

def test_party_members(client: TestClient):
    gid = _new_game(client)["id"]
    party = client.get(f"/api/party/{gid}").json()
    assert [m["role"] for m in party["members"]] == ["player"]
    assert party["limits"] == {"player": 1, "member": 2, "companion": 2}
    assert party["remaining_slots"]["player"] == 0

    resp = client.post(f"/api/party/{gid}/members", json={
        "name": "Gareth", "role": "companion", "character_class": "Fighter",
        "stats": {"health": 120, "max_health": 120},
    })
    assert resp.status_code == 201
    gareth = resp.json()["member"]

    resp = client.put(f"/api/party/{gid}/members/{gareth['id']}", json={"description": "Scarred veteran"})
    assert resp.json()["member"]["description"] == "Scarred veteran"
    assert resp.json()["member"]["character_class"] == "Fighter"

    resp = client.put(f"/api/party/{gid}/health", json={"character_id": gareth["id"], "health": 500})
    assert resp.json()["member"]["stats"] == {"health": 120, "max_health": 120}

    assert client.delete(f"/api/party/{gid}/members/{gareth['id']}").status_code == 204
    assert len(client.get(f"/api/party/{gid}").json()["members"]) == 1


def test_party_errors(client: TestClient):
    gid = _new_game(client)["id"]
    resp = client.post(f"/api/party/{gid}/members", json={"name": "Second", "role": "player"})
    assert resp.status_code == 400
    assert "Party limit exceeded" in resp.json()["detail"]
    assert client.post(f"/api/party/{gid}/members", json={"name": ""}).status_code == 422
    assert client.delete(f"/api/party/{gid}/members/nope").status_code == 404
    assert client.get("/api/party/nope").status_code == 404
