from datetime import datetime

from pydantic import BaseModel


class ProfileOut(BaseModel):
    """The caller's own profile."""
    id: str
    external_user_id: str
    name: str
    email: str
    avatar_url: str | None = None
    created_at: datetime

    class Config:
        from_attributes = True
