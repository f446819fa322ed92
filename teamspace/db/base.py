# Import all models so Base.metadata sees every table before create_all()
from teamspace.db.base_class import Base  # noqa: F401
from teamspace.models.profile import Profile  # noqa: F401
from teamspace.models.chat import Chat, ChatParticipant  # noqa: F401
from teamspace.models.calendar_event import CalendarEvent, EventParticipant  # noqa: F401
from teamspace.models.call import Call, CallParticipant  # noqa: F401
