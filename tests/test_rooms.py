import time
from datetime import datetime


def auth(user):
    return {"Authorization": f"Bearer {user}"}


def test_create_room_with_defaults(client, video):
    resp = client.post("/api/v1/calls/rooms", headers=auth("alice"))

    assert resp.status_code == 200
    body = resp.json()
    assert body["roomName"] in video.rooms
    assert body["roomUrl"].endswith(body["roomName"])
    expires_at = datetime.fromisoformat(body["expiresAt"].replace("Z", "+00:00")).timestamp()
    assert abs(expires_at - (time.time() + 24 * 3600)) < 120


def test_create_room_caps_expiry_at_one_week(client, video):
    resp = client.post(
        "/api/v1/calls/rooms",
        json={"roomName": "sprint-planning", "expiresIn": 1000},
        headers=auth("alice"),
    )

    assert resp.status_code == 200
    assert resp.json()["roomName"] == "sprint-planning"
    exp = video.rooms["sprint-planning"]["config"]["exp"]
    assert abs(exp - (time.time() + 168 * 3600)) < 120


def test_create_room_rejects_bad_name(client, video):
    resp = client.post("/api/v1/calls/rooms", json={"roomName": "no spaces/allowed"}, headers=auth("alice"))

    assert resp.status_code == 422
    assert video.rooms == {}


def test_create_room_provider_failure(client, video):
    video.fail_create = True

    resp = client.post("/api/v1/calls/rooms", headers=auth("alice"))

    assert resp.status_code == 502


def test_room_token_for_existing_room(client, video, profile_id):
    bob = profile_id("bob")
    client.post("/api/v1/calls/rooms", json={"roomName": "retro"}, headers=auth("alice"))

    resp = client.get("/api/v1/calls/rooms", params={"roomName": "retro"}, headers=auth("bob"))

    assert resp.status_code == 200
    assert resp.json()["roomName"] == "retro"
    assert resp.json()["token"]
    assert video.tokens[-1] == {"room_name": "retro", "user_name": "User bob", "user_id": bob, "is_owner": False}


def test_room_token_for_missing_room(client):
    resp = client.get("/api/v1/calls/rooms", params={"roomName": "nowhere"}, headers=auth("alice"))

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Room not found"


def test_rooms_require_authentication(client):
    assert client.post("/api/v1/calls/rooms").status_code == 401
    assert client.get("/api/v1/calls/rooms", params={"roomName": "retro"}).status_code == 401


def test_room_token_rejects_path_like_names(client, video):
    for name in ("..", "../meeting-tokens", "a/b"):
        resp = client.get("/api/v1/calls/rooms", params={"roomName": name}, headers=auth("alice"))
        assert resp.status_code == 422
    assert video.tokens == []
