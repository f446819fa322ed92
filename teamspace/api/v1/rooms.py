"""
Bare room endpoints. Allocate a Daily room ahead of time, or fetch a join
token for an existing room, without a call record.
"""
from fastapi import APIRouter, Depends, Query

from teamspace.api.deps import get_call_coordinator, get_current_profile
from teamspace.models.profile import Profile
from teamspace.schemas.call import CreateRoomRequest, CreateRoomResponse, RoomTokenResponse
from teamspace.services.call_coordinator import CallCoordinator

router = APIRouter(prefix="/calls/rooms", tags=["rooms"])


@router.post("", response_model=CreateRoomResponse)
async def create_room(
    payload: CreateRoomRequest | None = None,
    current_profile: Profile = Depends(get_current_profile),
    coordinator: CallCoordinator = Depends(get_call_coordinator),
):
    payload = payload or CreateRoomRequest()
    result = await coordinator.create_room(room_name=payload.room_name, expires_in=payload.expires_in)
    return CreateRoomResponse(**result)


@router.get("", response_model=RoomTokenResponse)
async def get_room_token(
    room_name: str = Query(alias="roomName", min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_-]+$"),
    current_profile: Profile = Depends(get_current_profile),
    coordinator: CallCoordinator = Depends(get_call_coordinator),
):
    result = await coordinator.get_room_token(current_profile, room_name)
    return RoomTokenResponse(**result)
