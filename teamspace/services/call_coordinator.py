"""
Call Coordinator
================
Lifecycle and access control for video calls.

A call ties together a row in `calls`, an external Daily room, and the
`call_participants` membership rows. The store is the source of truth for
call state; the room is disposable and bounded by its own expiry, so room
allocation is fail-fast while room release is best-effort.

Access to a call is granted to its starter, to anyone with a participant
row, and to members of a linked chat or participants of a linked calendar
event. Callers with none of these get the same "not found" answer as for a
call that doesn't exist.
"""
import logging
import time
from datetime import datetime, timezone

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from teamspace.core.config import settings
from teamspace.core.errors import CallError, Forbidden, Gone, InvalidRequest, NotFound, UpstreamFailure
from teamspace.db.base_class import new_id, utcnow
from teamspace.middleware.prometheus import (
    calls_created_total,
    calls_ended_total,
    enrollment_failures_total,
    room_release_failures_total,
)
from teamspace.models.calendar_event import CalendarEvent, EventParticipant
from teamspace.models.call import CALL_ACTIVE, CALL_ENDED, Call, CallParticipant
from teamspace.models.chat import Chat, ChatParticipant
from teamspace.models.profile import Profile
from teamspace.services.daily import DailyClient

logger = logging.getLogger("teamspace.calls")

ACTION_END = "end"
ACTION_LEAVE = "leave"


class CallCoordinator:
    def __init__(self, db: AsyncSession, video: DailyClient):
        self.db = db
        self.video = video

    # ── Lookups ──────────────────────────────────────────
    async def _load_call(self, call_id: str, refresh: bool = False) -> Call | None:
        stmt = (
            select(Call)
            .where(Call.id == call_id)
            .options(
                selectinload(Call.starter),
                selectinload(Call.participants).selectinload(CallParticipant.user),
            )
        )
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _participant_row(self, call_id: str, profile_id: str) -> CallParticipant | None:
        result = await self.db.execute(
            select(CallParticipant).where(
                CallParticipant.call_id == call_id,
                CallParticipant.user_id == profile_id,
            )
        )
        return result.scalar_one_or_none()

    async def _is_chat_member(self, chat_id: str, profile_id: str) -> bool:
        result = await self.db.execute(
            select(ChatParticipant.id).where(
                ChatParticipant.chat_id == chat_id,
                ChatParticipant.user_id == profile_id,
            )
        )
        return result.first() is not None

    async def _is_event_participant(self, event_id: str, profile_id: str) -> bool:
        result = await self.db.execute(
            select(EventParticipant.id).where(
                EventParticipant.event_id == event_id,
                EventParticipant.user_id == profile_id,
            )
        )
        return result.first() is not None

    async def _has_access(
        self,
        call: Call,
        profile: Profile,
        participant: CallParticipant | None,
    ) -> bool:
        if call.started_by == profile.id or participant is not None:
            return True
        if call.chat_id and await self._is_chat_member(call.chat_id, profile.id):
            return True
        if call.calendar_event_id and await self._is_event_participant(call.calendar_event_id, profile.id):
            return True
        return False

    # ── Room policies ────────────────────────────────────
    async def _allocate_room(self) -> dict:
        """Strict: a call must not be persisted without a room."""
        try:
            return await self.video.create_room()
        except UpstreamFailure as exc:
            logger.error("Failed to create video room: %s", exc)
            raise UpstreamFailure("Failed to create video room") from exc

    async def _release_room_quietly(self, room_name: str) -> bool:
        """Best-effort: the room expires on its own if this fails."""
        try:
            await self.video.delete_room(room_name)
            return True
        except UpstreamFailure as exc:
            room_release_failures_total.inc()
            logger.warning("Failed to release room %s, leaving it to expire: %s", room_name, exc)
            return False

    # ── Participant bookkeeping ──────────────────────────
    async def _enroll(self, call_id: str, member_ids: list[str]) -> int:
        """Insert participant rows at creation. Failures are logged, not raised.

        Chat members and event participants recover on first join through
        `_upsert_participant`. An explicit invitee with no such link does not:
        if this insert fails they have no access path and the call stays 404
        for them.
        """
        result = await self.db.execute(select(Profile.id).where(Profile.id.in_(member_ids)))
        known = set(result.scalars().all())
        unknown = [uid for uid in member_ids if uid not in known]
        if unknown:
            logger.warning("Call %s: skipping unknown participant ids %s", call_id, unknown)

        rows = [CallParticipant(call_id=call_id, user_id=uid) for uid in member_ids if uid in known]
        if not rows:
            return 0
        self.db.add_all(rows)
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            enrollment_failures_total.labels(stage="create").inc(len(rows))
            logger.error("Call %s: failed to add %d participants: %s", call_id, len(rows), exc)
            return 0
        return len(rows)

    async def _upsert_participant(self, call_id: str, profile_id: str) -> None:
        """(Re)activate the caller's row, keyed on the (call, profile) unique pair."""
        dialect = self.db.get_bind().dialect.name
        insert = pg_insert if dialect == "postgresql" else sqlite_insert
        now = utcnow()
        still_active = select(Call.id).where(Call.id == call_id, Call.status == CALL_ACTIVE).exists()
        stmt = (
            insert(CallParticipant)
            .values(id=new_id(), call_id=call_id, user_id=profile_id, joined_at=now, left_at=None)
            .on_conflict_do_update(
                index_elements=["call_id", "user_id"],
                set_={"joined_at": now, "left_at": None},
                where=still_active,
            )
        )
        try:
            await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            enrollment_failures_total.labels(stage="join").inc()
            logger.error("Call %s: failed to enroll %s on join: %s", call_id, profile_id, exc)

    async def _link_calendar_event(self, event_id: str, call_id: str) -> None:
        try:
            result = await self.db.execute(
                update(CalendarEvent).where(CalendarEvent.id == event_id).values(call_id=call_id)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Failed to link call %s to calendar event %s: %s", call_id, event_id, exc)
            return
        if result.rowcount == 0:
            logger.warning("Calendar event %s vanished before call %s was linked", event_id, call_id)

    # ── State transitions ────────────────────────────────
    async def _end_call(self, call: Call, reason: str) -> bool:
        """Move an active call to ended. Returns False if it was already ended."""
        call_id, room_name = call.id, call.room_name
        now = utcnow()
        result = await self.db.execute(
            update(Call)
            .where(Call.id == call_id, Call.status == CALL_ACTIVE)
            .values(status=CALL_ENDED, ended_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount == 0:
            return False

        set_committed_value(call, "status", CALL_ENDED)
        set_committed_value(call, "ended_at", now)
        calls_ended_total.labels(reason=reason).inc()
        logger.info("Call %s ended (%s)", call_id, reason)

        try:
            await self.db.execute(
                update(CallParticipant)
                .where(CallParticipant.call_id == call_id, CallParticipant.left_at.is_(None))
                .values(left_at=now)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            logger.error("Call %s: failed to mark participants as left: %s", call_id, exc)

        await self._release_room_quietly(room_name)
        return True

    # ── Operations ───────────────────────────────────────
    async def create_call(
        self,
        profile: Profile,
        title: str | None = None,
        participant_ids: list[str] | None = None,
        calendar_event_id: str | None = None,
        chat_id: str | None = None,
    ) -> dict:
        # Best-effort steps below may roll back and expire loaded objects
        caller_id, caller_name = profile.id, profile.name
        # Caller first, then invitees in order, no duplicates
        member_ids = list(dict.fromkeys([caller_id, *(participant_ids or [])]))

        if calendar_event_id and await self.db.get(CalendarEvent, calendar_event_id) is None:
            raise InvalidRequest("Calendar event not found")
        if chat_id and await self.db.get(Chat, chat_id) is None:
            raise InvalidRequest("Chat not found")

        room = await self._allocate_room()
        room_name, room_url = room["name"], room["url"]

        call = Call(
            room_name=room_name,
            room_url=room_url,
            title=title or None,
            started_by=caller_id,
            calendar_event_id=calendar_event_id,
            chat_id=chat_id,
            status=CALL_ACTIVE,
        )
        self.db.add(call)
        try:
            await self.db.commit()
        except SQLAlchemyError as exc:
            await self.db.rollback()
            # The room is abandoned; it expires on its own.
            logger.error("Failed to create call record for room %s: %s", room_name, exc)
            raise CallError("Failed to create call") from exc

        call_id = call.id
        calls_created_total.inc()
        logger.info("Call %s created by %s in room %s", call_id, caller_id, room_name)

        await self._enroll(call_id, member_ids)

        if calendar_event_id:
            await self._link_calendar_event(calendar_event_id, call_id)

        token = await self.video.create_meeting_token(
            room_name=room_name,
            user_name=caller_name,
            user_id=caller_id,
            is_owner=True,
        )
        return {"id": call_id, "room_url": room_url, "token": token}

    async def get_call_for_join(self, profile: Profile, call_id: str) -> dict:
        call = await self._load_call(call_id)
        if call is None:
            raise NotFound()

        participant = next((p for p in call.participants if p.user_id == profile.id), None)
        if not await self._has_access(call, profile, participant):
            raise NotFound()

        if call.status == CALL_ENDED:
            raise Gone()

        is_starter = call.started_by == profile.id
        token = await self.video.create_meeting_token(
            room_name=call.room_name,
            user_name=profile.name,
            user_id=profile.id,
            is_owner=is_starter,
        )

        if participant is None or participant.left_at is not None:
            await self._upsert_participant(call.id, profile.id)
            call = await self._load_call(call_id, refresh=True)

        return {"call": call, "token": token, "room_url": call.room_url}

    async def update_participation(self, profile: Profile, call_id: str, action: str) -> dict:
        if action not in (ACTION_END, ACTION_LEAVE):
            raise InvalidRequest('Invalid action. Must be "end" or "leave"')

        call = await self.db.get(Call, call_id)
        if call is None:
            raise NotFound()
        if call.status == CALL_ENDED:
            raise Gone("This call has already ended")

        if action == ACTION_END:
            if call.started_by != profile.id:
                raise Forbidden("Only the call starter can end the call")
            await self._end_call(call, reason="explicit")
            return {"status": CALL_ENDED, "auto_ended": False}

        participant = await self._participant_row(call.id, profile.id)
        if not await self._has_access(call, profile, participant):
            raise NotFound()

        await self.db.execute(
            update(CallParticipant)
            .where(
                CallParticipant.call_id == call.id,
                CallParticipant.user_id == profile.id,
                CallParticipant.left_at.is_(None),
            )
            .values(left_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        remaining = await self.db.scalar(
            select(func.count(CallParticipant.id)).where(
                CallParticipant.call_id == call.id,
                CallParticipant.left_at.is_(None),
            )
        )
        if not remaining:
            # Last one out; a concurrent leave may have ended it already.
            await self._end_call(call, reason="auto")
            return {"status": CALL_ENDED, "auto_ended": True}

        return {"status": "left", "auto_ended": False}

    async def delete_call(self, profile: Profile, call_id: str) -> None:
        call = await self._load_call(call_id)
        if call is None:
            raise NotFound()
        if call.started_by != profile.id:
            raise Forbidden("Only the call starter can delete this call")

        await self._release_room_quietly(call.room_name)
        await self.db.delete(call)
        await self.db.commit()
        logger.info("Call %s deleted by %s", call_id, profile.id)

    async def list_calls(self, profile: Profile, status: str = CALL_ACTIVE) -> list[Call]:
        joined = select(CallParticipant.call_id).where(CallParticipant.user_id == profile.id)
        stmt = (
            select(Call)
            .where(or_(Call.started_by == profile.id, Call.id.in_(joined)))
            .options(
                selectinload(Call.starter),
                selectinload(Call.participants).selectinload(CallParticipant.user),
            )
            .order_by(Call.created_at.desc())
        )
        if status != "all":
            stmt = stmt.where(Call.status == status)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # ── Bare rooms ───────────────────────────────────────
    async def create_room(self, room_name: str | None = None, expires_in: float | None = None) -> dict:
        """Allocate a room with no call record, e.g. ahead of a scheduled event."""
        hours = expires_in if expires_in and expires_in > 0 else settings.room_expiry_hours
        hours = min(hours, settings.room_max_expiry_hours)
        exp = int(time.time() + hours * 60 * 60)
        try:
            room = await self.video.create_room(name=room_name, properties={"exp": exp})
        except UpstreamFailure as exc:
            raise UpstreamFailure("Failed to create room") from exc

        room_exp = (room.get("config") or {}).get("exp") or exp
        return {
            "room_name": room["name"],
            "room_url": room["url"],
            "expires_at": datetime.fromtimestamp(room_exp, tz=timezone.utc),
        }

    async def get_room_token(self, profile: Profile, room_name: str) -> dict:
        room = await self.video.get_room(room_name)
        if room is None:
            raise NotFound("Room not found")
        token = await self.video.create_meeting_token(
            room_name=room_name,
            user_name=profile.name,
            user_id=profile.id,
            is_owner=False,
        )
        return {"room_name": room.get("name", room_name), "room_url": room["url"], "token": token}
