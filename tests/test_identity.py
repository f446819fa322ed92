import asyncio

import httpx
import pytest
from jose import jwt
from starlette.requests import Request

from teamspace.core.config import settings
from teamspace.core.errors import Unauthenticated, UpstreamFailure
from teamspace.services.identity import IdentityProvider, profile_from_user_payload


def request_with(headers):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
    }
    return Request(scope)


def signed(claims, key=None):
    return jwt.encode(claims, key or settings.identity_jwt_key, algorithm=settings.identity_jwt_algorithm)


def test_authenticate_returns_subject():
    token = signed({"sub": "user_2abc"})
    request = request_with({"Authorization": f"Bearer {token}"})

    assert IdentityProvider().authenticate(request) == "user_2abc"


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer "},
        {"Authorization": "Basic dXNlcjpwYXNz"},
        {"Authorization": "Bearer not-a-jwt"},
    ],
)
def test_authenticate_rejects_bad_credentials(headers):
    with pytest.raises(Unauthenticated):
        IdentityProvider().authenticate(request_with(headers))


def test_authenticate_rejects_foreign_signature():
    token = signed({"sub": "user_2abc"}, key="someone-elses-key")

    with pytest.raises(Unauthenticated):
        IdentityProvider().authenticate(request_with({"Authorization": f"Bearer {token}"}))


def test_authenticate_requires_subject():
    token = signed({"email": "a@example.com"})

    with pytest.raises(Unauthenticated):
        IdentityProvider().authenticate(request_with({"Authorization": f"Bearer {token}"}))


def test_profile_from_full_payload():
    profile = profile_from_user_payload("user_1", {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "username": "ada",
        "email_addresses": [{"email_address": "ada@example.com"}],
        "image_url": "https://img.example.com/ada.png",
    })

    assert profile.name == "Ada Lovelace"
    assert profile.email == "ada@example.com"
    assert profile.avatar_url == "https://img.example.com/ada.png"


def test_profile_name_fallbacks():
    assert profile_from_user_payload("u", {"first_name": "Ada"}).name == "Ada"
    assert profile_from_user_payload("u", {"username": "ada"}).name == "ada"
    assert profile_from_user_payload("u", {}).name == "Unknown"
    assert profile_from_user_payload("u", {}).email == "u@placeholder.local"


def test_fetch_user_profile_from_users_api(monkeypatch):
    monkeypatch.setattr(settings, "identity_api_key", "sk_test")
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(200, json={"first_name": "Grace", "last_name": "Hopper"})

    provider = IdentityProvider(transport=httpx.MockTransport(handler))
    profile = asyncio.run(provider.fetch_user_profile("user_9"))

    assert seen["path"].endswith("/users/user_9")
    assert seen["auth"] == "Bearer sk_test"
    assert profile.name == "Grace Hopper"


def test_fetch_user_profile_upstream_error(monkeypatch):
    monkeypatch.setattr(settings, "identity_api_key", "sk_test")
    provider = IdentityProvider(transport=httpx.MockTransport(lambda request: httpx.Response(503)))

    with pytest.raises(UpstreamFailure):
        asyncio.run(provider.fetch_user_profile("user_9"))
