"""
Identity provider boundary: verify the caller's bearer token and fetch
display data for a user the first time we see them.
"""
import logging
from dataclasses import dataclass

import httpx
from fastapi import Request

from teamspace.core.config import settings
from teamspace.core.errors import Unauthenticated, UpstreamFailure
from teamspace.core.security import decode_identity_token

logger = logging.getLogger("teamspace.identity")


@dataclass
class IdentityProfile:
    name: str
    email: str
    avatar_url: str | None = None


def _extract_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.lower().startswith("bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def profile_from_user_payload(external_user_id: str, data: dict) -> IdentityProfile:
    first = (data.get("first_name") or "").strip()
    last = (data.get("last_name") or "").strip()
    if first and last:
        name = f"{first} {last}"
    else:
        name = first or data.get("username") or "Unknown"

    email = None
    addresses = data.get("email_addresses") or []
    if addresses:
        email = addresses[0].get("email_address")

    return IdentityProfile(
        name=name,
        email=email or f"{external_user_id}@placeholder.local",
        avatar_url=data.get("image_url"),
    )


class IdentityProvider:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    def authenticate(self, request: Request) -> str:
        """Return the caller's external user id or raise Unauthenticated."""
        token = _extract_bearer_token(request)
        if not token:
            raise Unauthenticated()
        try:
            payload = decode_identity_token(token)
        except ValueError:
            raise Unauthenticated()
        subject = payload.get("sub")
        if not subject:
            raise Unauthenticated()
        return str(subject)

    async def fetch_user_profile(self, external_user_id: str) -> IdentityProfile:
        if not settings.identity_api_key:
            logger.warning("Identity API key not set; creating placeholder profile for %s", external_user_id)
            return profile_from_user_payload(external_user_id, {})

        async with httpx.AsyncClient(
            base_url=settings.identity_api_base,
            headers={"Authorization": f"Bearer {settings.identity_api_key}"},
            timeout=settings.provider_timeout_seconds,
            transport=self._transport,
        ) as client:
            try:
                resp = await client.get(f"/users/{external_user_id}")
            except httpx.HTTPError as exc:
                logger.error("Identity lookup for %s failed: %s", external_user_id, exc)
                raise UpstreamFailure("Failed to resolve user profile") from exc

        if resp.status_code != 200:
            logger.error("Identity lookup for %s returned %s", external_user_id, resp.status_code)
            raise UpstreamFailure("Failed to resolve user profile")
        return profile_from_user_payload(external_user_id, resp.json())
