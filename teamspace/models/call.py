from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from teamspace.db.base_class import Base, new_id, utcnow

CALL_ACTIVE = "active"
CALL_ENDED = "ended"


class Call(Base):
    __tablename__ = "calls"
    __table_args__ = (
        CheckConstraint("status IN ('active', 'ended')", name="ck_calls_status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    room_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    room_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)

    started_by: Mapped[str | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), index=True, nullable=True
    )
    calendar_event_id: Mapped[str | None] = mapped_column(
        ForeignKey("calendar_events.id", ondelete="SET NULL"), index=True, nullable=True
    )
    chat_id: Mapped[str | None] = mapped_column(
        ForeignKey("chats.id", ondelete="SET NULL"), index=True, nullable=True
    )

    status: Mapped[str] = mapped_column(String(16), default=CALL_ACTIVE, index=True, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    # set if and only if status == "ended"
    ended_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    starter = relationship("Profile", foreign_keys=[started_by])
    participants = relationship(
        "CallParticipant",
        back_populates="call",
        cascade="all, delete-orphan",
        order_by="CallParticipant.joined_at",
    )


class CallParticipant(Base):
    __tablename__ = "call_participants"
    __table_args__ = (UniqueConstraint("call_id", "user_id", name="uq_call_participants_call_user"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    call_id: Mapped[str] = mapped_column(ForeignKey("calls.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("profiles.id", ondelete="CASCADE"), index=True)

    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    # NULL means currently in the call
    left_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    call = relationship("Call", back_populates="participants")
    user = relationship("Profile")
