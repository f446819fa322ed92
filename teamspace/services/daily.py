"""
Daily.co REST client
====================
Server-side room and meeting-token management for video calls:
create rooms with the team defaults, look rooms up, delete them when a call
ends, and mint short-lived per-user meeting tokens.
"""
import logging
import re
import secrets
import string
import time

import httpx

from teamspace.core.config import settings
from teamspace.core.errors import InvalidRequest, UpstreamFailure

logger = logging.getLogger("teamspace.daily")

_NAME_ALPHABET = string.ascii_lowercase + string.digits
_ROOM_NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class VideoProviderError(UpstreamFailure):
    default_detail = "Video provider request failed"


def _room_path(name: str) -> str:
    # Room names are a single path segment; anything else could address another endpoint
    if not name or not _ROOM_NAME_RE.match(name):
        raise InvalidRequest("Invalid room name")
    return f"/rooms/{name}"


def generate_room_name() -> str:
    """Unique room name like 'call-1718000000000-k3x9qa'."""
    suffix = "".join(secrets.choice(_NAME_ALPHABET) for _ in range(6))
    return f"call-{int(time.time() * 1000)}-{suffix}"


def default_room_properties(expiry_hours: int | None = None) -> dict:
    hours = expiry_hours or settings.room_expiry_hours
    return {
        "max_participants": settings.room_max_participants,
        "enable_screenshare": True,
        "enable_chat": True,
        "enable_knocking": False,  # participants join directly with tokens
        "start_video_off": False,
        "start_audio_off": False,
        "exp": int(time.time()) + hours * 60 * 60,
        "eject_at_room_exp": True,
    }


class DailyClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = settings.daily_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.daily_api_base).rstrip("/")
        self.timeout = timeout or settings.provider_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self.api_key:
            raise VideoProviderError("DAILY_API_KEY is not configured")
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, json: dict | None = None) -> httpx.Response:
        async with self._client() as client:
            try:
                return await client.request(method, path, json=json)
            except httpx.HTTPError as exc:
                logger.error("Daily %s %s failed: %s", method, path, exc)
                raise VideoProviderError(f"Video provider unreachable: {exc}") from exc

    @staticmethod
    def _raise_for(resp: httpx.Response, action: str) -> None:
        logger.error("Failed to %s: %s %s", action, resp.status_code, resp.text[:500])
        raise VideoProviderError(f"Failed to {action}: {resp.status_code}")

    async def create_room(
        self,
        name: str | None = None,
        privacy: str = "private",
        properties: dict | None = None,
    ) -> dict:
        """Create a room; `properties` override the defaults key by key."""
        room_properties = default_room_properties()
        if properties:
            room_properties.update(properties)
        body = {
            "name": name or generate_room_name(),
            "privacy": privacy,
            "properties": room_properties,
        }
        resp = await self._request("POST", "/rooms", json=body)
        if resp.status_code >= 400:
            self._raise_for(resp, "create Daily room")
        room = resp.json()
        logger.info("Created Daily room %s", room.get("name"))
        return room

    async def get_room(self, name: str) -> dict | None:
        resp = await self._request("GET", _room_path(name))
        if resp.status_code == 404:
            return None
        if resp.status_code >= 400:
            self._raise_for(resp, "get Daily room")
        return resp.json()

    async def delete_room(self, name: str) -> None:
        """Delete a room. A room that is already gone counts as deleted."""
        resp = await self._request("DELETE", _room_path(name))
        if resp.status_code >= 400 and resp.status_code != 404:
            self._raise_for(resp, "delete Daily room")
        logger.info("Deleted Daily room %s", name)

    async def create_meeting_token(
        self,
        room_name: str,
        user_name: str | None = None,
        user_id: str | None = None,
        is_owner: bool = False,
        expires_at: int | None = None,
    ) -> str:
        """Mint a join token for one user; expires after an hour unless told otherwise."""
        exp = expires_at or int(time.time()) + settings.meeting_token_expiry_minutes * 60
        body = {
            "properties": {
                "room_name": room_name,
                "user_name": user_name,
                "user_id": user_id,
                "is_owner": is_owner,
                "enable_screenshare": True,
                "start_video_off": False,
                "start_audio_off": False,
                "exp": exp,
            }
        }
        resp = await self._request("POST", "/meeting-tokens", json=body)
        if resp.status_code >= 400:
            self._raise_for(resp, "create meeting token")
        return resp.json()["token"]
