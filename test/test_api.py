"""
API tests: auth, games, investigators, stats and phase checklists over HTTP.
"""
from datetime import datetime

import pytest
from jose import jwt

from arkham_tracker.api.auth import ALGORITHM, SECRET_KEY
from conftest import register


@pytest.fixture
def game_id(client, auth_headers, catalog):
    response = client.post("/games", json={"name": "Test"}, headers=auth_headers)
    assert response.status_code == 200
    return response.json()["game"]["id"]


def add_investigator(client, headers, game_id, code):
    return client.post(f"/games/{game_id}/investigators", json={"code": code}, headers=headers)


@pytest.fixture
def roland_id(client, auth_headers, game_id):
    response = add_investigator(client, auth_headers, game_id, "roland_banks")
    assert response.status_code == 200
    return response.json()["investigator"]["id"]


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Arkham Tracker API"


# ----- Auth -----

def test_register_login_me(client):
    register(client, username="daisy", password="tome")
    response = client.post("/auth/login", json={"email": "daisy@example.com", "password": "tome"})
    assert response.status_code == 200
    token = response.json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["username"] == "daisy"
    assert "password_hash" not in me.json()


def test_login_wrong_password(client):
    register(client, username="daisy", password="tome")
    response = client.post("/auth/login", json={"email": "daisy@example.com", "password": "nope"})
    assert response.status_code == 401


def test_register_rejects_bad_username_and_duplicates(client):
    response = client.post("/auth/register", json={"email": "a@example.com", "username": "bad name", "password": "x"})
    assert response.status_code == 400
    register(client, username="zoey")
    response = client.post("/auth/register", json={"email": "zoey@example.com", "username": "zoey2", "password": "x"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already registered"


def test_token_carries_session(client):
    response = client.post("/auth/register", json={
        "email": "ashcan@example.com",
        "username": "ashcan_pete",
        "password": "duke",
    })
    token = response.json()["access_token"]
    claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    assert claims["sub"] == response.json()["user"]["id"]
    assert claims["username"] == "ashcan_pete"

    session = client.get("/auth/session", headers={"Authorization": f"Bearer {token}"}).json()["session"]
    assert session == {"user_id": claims["sub"], "username": "ashcan_pete"}


def test_session_is_null_when_signed_out(client):
    assert client.get("/auth/session").json() == {"session": None}
    bad = {"Authorization": "Bearer not-a-token"}
    assert client.get("/auth/session", headers=bad).json() == {"session": None}


def test_games_require_auth(client):
    assert client.get("/games").status_code == 401
    assert client.post("/games", json={"name": "x"}).status_code == 401
    bad = {"Authorization": "Bearer not-a-token"}
    assert client.get("/games", headers=bad).status_code == 401


# ----- Reference data -----

def test_catalog_listing(client, catalog):
    response = client.get("/catalog/investigators")
    assert [c["code"] for c in response.json()["investigators"]] == [
        "agnes_baker", "roland_banks", "wendy_adams",
    ]
    response = client.get("/catalog/investigators", params={"faction": "Guardian"})
    assert [c["name"] for c in response.json()["investigators"]] == ["Roland Banks"]


def test_phase_definitions(client):
    data = client.get("/phases").json()
    assert data["order"] == ["mythos", "investigation", "enemies", "upkeep"]
    assert len(data["checklists"]) == 3


# ----- Games -----

def test_create_list_get_delete_game(client, auth_headers, catalog):
    response = client.post("/games", json={"name": " Night of the Zealot ", "scenario": "The Gathering"}, headers=auth_headers)
    game = response.json()["game"]
    assert game["name"] == "Night of the Zealot"
    assert game["scenario"] == "The Gathering"
    assert game["investigators"] == []
    assert game["phases"]["mythos"]["place_doom"] is False

    games = client.get("/games", headers=auth_headers).json()["games"]
    assert [g["id"] for g in games] == [game["id"]]
    assert games[0]["investigator_count"] == 0

    assert client.get(f"/games/{game['id']}", headers=auth_headers).json()["game"]["id"] == game["id"]
    assert client.delete(f"/games/{game['id']}", headers=auth_headers).status_code == 200
    assert client.get(f"/games/{game['id']}", headers=auth_headers).status_code == 404


def test_create_first_round_game(client, auth_headers):
    response = client.post("/games", json={"name": "Round one", "first_round": True}, headers=auth_headers)
    phases = response.json()["game"]["phases"]
    assert all(phases["mythos"].values())
    assert not any(phases["upkeep"].values())


def test_create_game_requires_name(client, auth_headers):
    response = client.post("/games", json={"name": "  "}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Game name is required"


def test_other_users_game_forbidden(client, auth_headers, game_id):
    other = register(client, username="rita")
    assert client.get(f"/games/{game_id}", headers=other).status_code == 403
    assert client.delete(f"/games/{game_id}", headers=other).status_code == 403
    assert client.get("/games", headers=other).json()["games"] == []


def test_scenario_and_notes(client, auth_headers, game_id):
    response = client.put(f"/games/{game_id}/scenario", json={"scenario": "The Midnight Masks"}, headers=auth_headers)
    assert response.json()["game"]["scenario"] == "The Midnight Masks"
    assert response.json()["events"][0]["type"] == "scenario_updated"
    response = client.delete(f"/games/{game_id}/scenario", headers=auth_headers)
    assert response.json()["game"]["scenario"] is None
    response = client.put(f"/games/{game_id}/scenario", json={"scenario": "x" * 200}, headers=auth_headers)
    assert response.status_code == 400

    response = client.put(f"/games/{game_id}/notes", json={"notes": "Ghoul priest defeated"}, headers=auth_headers)
    assert response.json()["game"]["notes"] == "Ghoul priest defeated"


# ----- Investigators -----

def test_add_investigator_defaults(client, auth_headers, game_id):
    response = add_investigator(client, auth_headers, game_id, "roland_banks")
    assert response.status_code == 200
    inv = response.json()["investigator"]
    assert inv["current_health"] == 8
    assert inv["current_sanity"] == 5
    assert inv["actions_spent"] == 0
    assert inv["resources"] == 0
    assert response.json()["events"][0]["type"] == "investigator_added"
    assert len(response.json()["game"]["investigators"]) == 1


def test_investigator_limits(client, auth_headers, game_id):
    assert add_investigator(client, auth_headers, game_id, "roland_banks").status_code == 200
    duplicate = add_investigator(client, auth_headers, game_id, "roland_banks")
    assert duplicate.status_code == 400
    assert add_investigator(client, auth_headers, game_id, "agnes_baker").status_code == 200
    third = add_investigator(client, auth_headers, game_id, "wendy_adams")
    assert third.status_code == 400
    assert "at most 2" in third.json()["detail"]
    missing = add_investigator(client, auth_headers, "no-such-game", "wendy_adams")
    assert missing.status_code == 404


def test_delete_investigator(client, auth_headers, game_id, roland_id):
    response = client.delete(f"/games/{game_id}/investigators/{roland_id}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["game"]["investigators"] == []
    again = client.delete(f"/games/{game_id}/investigators/{roland_id}", headers=auth_headers)
    assert again.status_code == 404


# ----- Stats -----

def _stat(client, headers, game_id, inv_id, field, delta):
    return client.post(
        f"/games/{game_id}/investigators/{inv_id}/stats",
        json={"field": field, "delta": delta},
        headers=headers,
    )


def test_health_scenario(client, auth_headers, game_id, roland_id):
    response = _stat(client, auth_headers, game_id, roland_id, "health", -3)
    assert response.json()["game"]["investigators"][0]["current_health"] == 5
    response = _stat(client, auth_headers, game_id, roland_id, "health", -10)
    assert response.json()["game"]["investigators"][0]["current_health"] == 0
    assert response.json()["events"][0]["payload"]["change"] == -5


def test_stat_clamping(client, auth_headers, game_id, roland_id):
    inv = _stat(client, auth_headers, game_id, roland_id, "sanity", 10).json()["game"]["investigators"][0]
    assert inv["current_sanity"] == 5
    inv = _stat(client, auth_headers, game_id, roland_id, "resources", 42).json()["game"]["investigators"][0]
    assert inv["resources"] == 42
    inv = _stat(client, auth_headers, game_id, roland_id, "actions", -1).json()["game"]["investigators"][0]
    assert inv["actions_spent"] == 0


def test_huge_resource_delta(client, auth_headers, game_id, roland_id):
    response = _stat(client, auth_headers, game_id, roland_id, "resources", 2**63)
    assert response.status_code == 422
    for _ in range(3):
        response = _stat(client, auth_headers, game_id, roland_id, "resources", 1_000_000)
        assert response.status_code == 200
    assert response.json()["game"]["investigators"][0]["resources"] == 3_000_000


def test_stat_change_shows_in_game_list(client, auth_headers, game_id, roland_id):
    before = datetime.fromisoformat(client.get("/games", headers=auth_headers).json()["games"][0]["updated_at"])
    _stat(client, auth_headers, game_id, roland_id, "health", -1)
    after = datetime.fromisoformat(client.get("/games", headers=auth_headers).json()["games"][0]["updated_at"])
    assert after > before


def test_stat_invalid_field(client, auth_headers, game_id, roland_id):
    assert _stat(client, auth_headers, game_id, roland_id, "doom", 1).status_code == 422
    assert _stat(client, auth_headers, game_id, "missing", "health", 1).status_code == 404


def test_action_pips(client, auth_headers, game_id, roland_id):
    url = f"/games/{game_id}/investigators/{roland_id}/actions"
    spent = lambda r: r.json()["game"]["investigators"][0]["actions_spent"]  # noqa: E731
    assert spent(client.post(f"{url}/toggle", json={"index": 1}, headers=auth_headers)) == 2
    assert spent(client.post(f"{url}/toggle", json={"index": 3}, headers=auth_headers)) == 4
    assert spent(client.post(f"{url}/toggle", json={"index": 1}, headers=auth_headers)) == 1
    assert spent(client.post(f"{url}/reset", headers=auth_headers)) == 0
    assert client.post(f"{url}/toggle", json={"index": 7}, headers=auth_headers).status_code == 400


# ----- Phases -----

def test_phase_toggle_and_reset(client, auth_headers, game_id):
    url = f"/games/{game_id}/phases"
    response = client.post(f"{url}/mythos/toggle", json={"step": "place_doom"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["game"]["phases"]["mythos"]["place_doom"] is True
    assert response.json()["events"][0] == {
        "type": "phase_step_toggled",
        "payload": {"checklist": "mythos", "step": "place_doom", "value": True},
    }
    client.post(f"{url}/enemies/toggle", json={"step": "attack"}, headers=auth_headers)
    assert client.get(f"{url}/enemies", headers=auth_headers).json()["steps"] == {
        "hunter_move": False,
        "attack": True,
    }
    client.post(f"{url}/mythos/reset", headers=auth_headers)
    phases = client.get(url, headers=auth_headers).json()["phases"]
    assert phases["mythos"]["place_doom"] is False
    assert phases["enemies"]["attack"] is True


def test_phase_unknown_names(client, auth_headers, game_id):
    url = f"/games/{game_id}/phases"
    assert client.post(f"{url}/mythos/toggle", json={"step": "gain_resources"}, headers=auth_headers).status_code == 400
    assert client.post(f"{url}/investigation/reset", headers=auth_headers).status_code == 400
    assert client.get(f"{url}/doom", headers=auth_headers).status_code == 400


def test_reset_all(client, auth_headers, game_id, roland_id):
    client.post(f"/games/{game_id}/investigators/{roland_id}/actions/toggle", json={"index": 2}, headers=auth_headers)
    client.post(f"/games/{game_id}/phases/upkeep/toggle", json={"step": "gain_resources"}, headers=auth_headers)
    for _ in range(2):
        response = client.post(f"/games/{game_id}/reset-all", headers=auth_headers)
        assert response.status_code == 200
        game = response.json()["game"]
        assert game["investigators"][0]["actions_spent"] == 0
        assert not any(v for steps in game["phases"].values() for v in steps.values())
