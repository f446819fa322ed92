"""
Pytest configuration and fixtures.

The identity and video providers are swapped for in-process fakes through
FastAPI dependency overrides; the database is a throwaway SQLite file.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_teamspace.db")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("IDENTITY_JWT_KEY", "test-identity-signing-key")
os.environ.setdefault("DAILY_API_KEY", "test-daily-key")
if os.path.exists("test_teamspace.db"):
    os.remove("test_teamspace.db")

import pytest
from fastapi.testclient import TestClient

from teamspace.api.deps import get_identity_provider, get_video_provider
from teamspace.core.errors import Unauthenticated
from teamspace.core.rate_limit import limiter
from teamspace.db.base import Base
from teamspace.db.session import SessionLocal, engine
from teamspace.main import app
from teamspace.models import CalendarEvent, Chat, ChatParticipant, EventParticipant
from teamspace.services.daily import VideoProviderError
from teamspace.services.identity import IdentityProfile

Base.metadata.create_all(bind=engine)


class FakeIdentityProvider:
    """The bearer token is the external user id."""

    def authenticate(self, request):
        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer ") or not header[7:].strip():
            raise Unauthenticated()
        return header[7:].strip()

    async def fetch_user_profile(self, external_user_id):
        return IdentityProfile(
            name=f"User {external_user_id}",
            email=f"{external_user_id}@example.com",
        )


class FakeVideoProvider:
    def __init__(self):
        self.rooms = {}
        self.deleted = []
        self.tokens = []
        self.fail_create = False
        self.fail_delete = False
        self._counter = 0

    async def create_room(self, name=None, privacy="private", properties=None):
        if self.fail_create:
            raise VideoProviderError("Failed to create Daily room: 500")
        self._counter += 1
        name = name or f"call-test-{self._counter}"
        room = {
            "name": name,
            "url": f"https://teamspace.daily.co/{name}",
            "privacy": privacy,
            "config": dict(properties or {}),
        }
        self.rooms[name] = room
        return room

    async def get_room(self, name):
        return self.rooms.get(name)

    async def delete_room(self, name):
        self.deleted.append(name)
        if self.fail_delete:
            raise VideoProviderError("Failed to delete Daily room: 500")
        self.rooms.pop(name, None)

    async def create_meeting_token(self, room_name, user_name=None, user_id=None, is_owner=False, expires_at=None):
        self.tokens.append({
            "room_name": room_name,
            "user_name": user_name,
            "user_id": user_id,
            "is_owner": is_owner,
        })
        return f"tok-{len(self.tokens)}"


@pytest.fixture
def video():
    return FakeVideoProvider()


@pytest.fixture
def client(video):
    app.dependency_overrides[get_identity_provider] = FakeIdentityProvider
    app.dependency_overrides[get_video_provider] = lambda: video
    limiter.reset()
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def profile_id(client):
    """Resolve (and lazily create) the profile behind a bearer token."""
    def _resolve(user: str) -> str:
        resp = client.get("/api/v1/me", headers={"Authorization": f"Bearer {user}"})
        assert resp.status_code == 200
        return resp.json()["id"]
    return _resolve


@pytest.fixture
def seed_chat():
    def _seed(member_ids: list[str]) -> str:
        with SessionLocal() as db:
            chat = Chat(name="design-review", is_group=True)
            db.add(chat)
            db.flush()
            for member_id in member_ids:
                db.add(ChatParticipant(chat_id=chat.id, user_id=member_id))
            db.commit()
            return chat.id
    return _seed


@pytest.fixture
def seed_event():
    def _seed(creator_id: str, participant_ids: list[str]) -> str:
        with SessionLocal() as db:
            event = CalendarEvent(title="Sprint review", created_by=creator_id)
            db.add(event)
            db.flush()
            for participant_id in participant_ids:
                db.add(EventParticipant(event_id=event.id, user_id=participant_id))
            db.commit()
            return event.id
    return _seed
