"""
Calls API: create, list, join, leave or end, and delete video calls.
"""
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request

from teamspace.api.deps import get_call_coordinator, get_current_profile
from teamspace.core.config import settings
from teamspace.core.rate_limit import limiter
from teamspace.core.security import sanitize_input
from teamspace.models.profile import Profile
from teamspace.schemas.call import (
    CallOut,
    CreateCallRequest,
    CreateCallResponse,
    DeleteCallResponse,
    JoinCallResponse,
    UpdateCallRequest,
    UpdateCallResponse,
)
from teamspace.services.call_coordinator import CallCoordinator

router = APIRouter(prefix="/calls", tags=["calls"])


# ── Create Call ──────────────────────────────────────────
@router.post("", response_model=CreateCallResponse)
@limiter.limit(settings.call_create_rate_limit)
async def create_call(
    request: Request,
    payload: CreateCallRequest,
    current_profile: Profile = Depends(get_current_profile),
    coordinator: CallCoordinator = Depends(get_call_coordinator),
):
    title = sanitize_input(payload.title.strip()) if payload.title else None
    result = await coordinator.create_call(
        current_profile,
        title=title or None,
        participant_ids=payload.participant_ids,
        calendar_event_id=payload.calendar_event_id,
        chat_id=payload.chat_id,
    )
    return CreateCallResponse(**result)


# ── List Calls ───────────────────────────────────────────
@router.get("", response_model=list[CallOut])
async def list_calls(
    status: Literal["active", "ended", "all"] = Query(default="active"),
    current_profile: Profile = Depends(get_current_profile),
    coordinator: CallCoordinator = Depends(get_call_coordinator),
):
    calls = await coordinator.list_calls(current_profile, status=status)
    return [CallOut.model_validate(c) for c in calls]


# ── Get Call for Join ────────────────────────────────────
@router.get("/{call_id}", response_model=JoinCallResponse)
async def get_call(
    call_id: str,
    current_profile: Profile = Depends(get_current_profile),
    coordinator: CallCoordinator = Depends(get_call_coordinator),
):
    result = await coordinator.get_call_for_join(current_profile, call_id)
    return JoinCallResponse(
        call=CallOut.model_validate(result["call"]),
        token=result["token"],
        room_url=result["room_url"],
    )


# ── End / Leave ──────────────────────────────────────────
@router.patch("/{call_id}", response_model=UpdateCallResponse)
async def update_call(
    call_id: str,
    payload: UpdateCallRequest,
    current_profile: Profile = Depends(get_current_profile),
    coordinator: CallCoordinator = Depends(get_call_coordinator),
):
    result = await coordinator.update_participation(current_profile, call_id, payload.action)
    return UpdateCallResponse(**result)


# ── Delete Call ──────────────────────────────────────────
@router.delete("/{call_id}", response_model=DeleteCallResponse)
async def delete_call(
    call_id: str,
    current_profile: Profile = Depends(get_current_profile),
    coordinator: CallCoordinator = Depends(get_call_coordinator),
):
    """Starter-only cleanup of an abandoned call; participants go with it."""
    await coordinator.delete_call(current_profile, call_id)
    return DeleteCallResponse()
