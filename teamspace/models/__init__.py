from teamspace.db.base_class import Base
from teamspace.models.profile import Profile
from teamspace.models.chat import Chat, ChatParticipant
from teamspace.models.calendar_event import CalendarEvent, EventParticipant
from teamspace.models.call import Call, CallParticipant

__all__ = [
    "Base",
    "Profile",
    "Chat",
    "ChatParticipant",
    "CalendarEvent",
    "EventParticipant",
    "Call",
    "CallParticipant",
]
