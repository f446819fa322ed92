"""
Call Schemas: request/response models for the calls API.

Request bodies and top-level response keys are camelCase on the wire
(`participantIds`, `roomUrl`, `autoEnded`); call records keep the column
names.
"""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class CreateCallRequest(BaseModel):
    title: str | None = Field(default=None, max_length=255)
    participant_ids: list[str] = Field(default_factory=list, alias="participantIds", max_length=50)
    calendar_event_id: str | None = Field(default=None, alias="calendarEventId", max_length=36)
    chat_id: str | None = Field(default=None, alias="chatId", max_length=36)

    class Config:
        populate_by_name = True


class CreateCallResponse(BaseModel):
    id: str
    room_url: str = Field(alias="roomUrl")
    token: str

    class Config:
        populate_by_name = True


class ProfileSummary(BaseModel):
    id: str
    name: str
    avatar_url: str | None = None

    class Config:
        from_attributes = True


class CallParticipantOut(BaseModel):
    id: str
    user_id: str
    joined_at: datetime
    left_at: datetime | None = None
    user: ProfileSummary | None = None

    class Config:
        from_attributes = True


class CallOut(BaseModel):
    id: str
    room_name: str
    room_url: str
    title: str | None = None
    started_by: str | None = None
    calendar_event_id: str | None = None
    chat_id: str | None = None
    status: Literal["active", "ended"]
    started_at: datetime
    ended_at: datetime | None = None
    created_at: datetime
    starter: ProfileSummary | None = None
    participants: list[CallParticipantOut] = []

    class Config:
        from_attributes = True


class JoinCallResponse(BaseModel):
    call: CallOut
    token: str
    room_url: str = Field(alias="roomUrl")

    class Config:
        populate_by_name = True


class UpdateCallRequest(BaseModel):
    action: Literal["end", "leave"]


class UpdateCallResponse(BaseModel):
    success: bool = True
    status: Literal["ended", "left"]
    auto_ended: bool = Field(default=False, alias="autoEnded")

    class Config:
        populate_by_name = True


class DeleteCallResponse(BaseModel):
    success: bool = True


class CreateRoomRequest(BaseModel):
    room_name: str | None = Field(
        default=None, alias="roomName", min_length=1, max_length=128, pattern=r"^[A-Za-z0-9_-]+$"
    )
    expires_in: float | None = Field(default=None, alias="expiresIn")  # hours

    class Config:
        populate_by_name = True


class CreateRoomResponse(BaseModel):
    room_name: str = Field(alias="roomName")
    room_url: str = Field(alias="roomUrl")
    expires_at: datetime | None = Field(default=None, alias="expiresAt")

    class Config:
        populate_by_name = True


class RoomTokenResponse(BaseModel):
    room_name: str = Field(alias="roomName")
    room_url: str = Field(alias="roomUrl")
    token: str

    class Config:
        populate_by_name = True
