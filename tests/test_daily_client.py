import asyncio
import json

import httpx
import pytest

from teamspace.core.errors import InvalidRequest
from teamspace.services.daily import DailyClient, VideoProviderError, generate_room_name


def make_client(handler, api_key="test-daily-key"):
    return DailyClient(
        api_key=api_key,
        base_url="https://daily.test/v1",
        transport=httpx.MockTransport(handler),
    )


def test_generate_room_name_shape():
    name = generate_room_name()
    prefix, millis, suffix = name.split("-")
    assert prefix == "call"
    assert millis.isdigit()
    assert len(suffix) == 6
    assert generate_room_name() != name


def test_create_room_sends_team_defaults():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"name": seen["body"]["name"], "url": "https://x.daily.co/r"})

    room = asyncio.run(make_client(handler).create_room(properties={"exp": 1234}))

    assert seen["auth"] == "Bearer test-daily-key"
    assert seen["path"] == "/v1/rooms"
    assert seen["body"]["privacy"] == "private"
    assert seen["body"]["name"].startswith("call-")
    props = seen["body"]["properties"]
    assert props["max_participants"] == 6
    assert props["enable_knocking"] is False
    assert props["eject_at_room_exp"] is True
    assert props["exp"] == 1234
    assert room["url"] == "https://x.daily.co/r"


def test_create_room_error_raises():
    client = make_client(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(VideoProviderError):
        asyncio.run(client.create_room())


def test_missing_api_key_raises():
    client = make_client(lambda request: httpx.Response(200, json={}), api_key="")

    with pytest.raises(VideoProviderError, match="DAILY_API_KEY"):
        asyncio.run(client.create_room())


def test_unreachable_provider_raises():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(VideoProviderError):
        asyncio.run(make_client(handler).delete_room("call-1"))


def test_get_room_missing_returns_none():
    client = make_client(lambda request: httpx.Response(404, json={"error": "not-found"}))
    assert asyncio.run(client.get_room("gone")) is None


def test_delete_room_treats_404_as_deleted():
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path))
        return httpx.Response(404, json={"error": "not-found"})

    asyncio.run(make_client(handler).delete_room("call-1"))

    assert calls == [("DELETE", "/v1/rooms/call-1")]


def test_meeting_token_carries_owner_flag():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"token": "eyJ.token"})

    token = asyncio.run(
        make_client(handler).create_meeting_token("call-1", user_name="Alice", user_id="p1", is_owner=True)
    )

    assert token == "eyJ.token"
    props = seen["body"]["properties"]
    assert props["room_name"] == "call-1"
    assert props["user_id"] == "p1"
    assert props["is_owner"] is True
    assert props["exp"] > 0


def test_room_names_must_be_a_single_path_segment():
    requests = []

    def handler(request):
        requests.append(request.url.path)
        return httpx.Response(200, json={"name": "x", "url": "https://x.daily.co/x"})

    client = make_client(handler)
    with pytest.raises(InvalidRequest):
        asyncio.run(client.get_room(".."))
    with pytest.raises(InvalidRequest):
        asyncio.run(client.get_room("../meeting-tokens"))
    with pytest.raises(InvalidRequest):
        asyncio.run(client.delete_room("rooms/../x"))
    assert requests == []
