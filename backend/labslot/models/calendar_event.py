from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from labslot.db.base import Base


class EventStateColumn(str, Enum):
    PENDING = "PENDING"
    VALIDATED = "VALIDATED"
    CANCELLED = "CANCELLED"
    MOVED = "MOVED"
    IN_PROGRESS = "IN_PROGRESS"


class CalendarEventRecord(Base):
    __tablename__ = "calendar_events"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    discipline: Mapped[str] = mapped_column(String(50), nullable=False, index=True, default="chimie")
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[EventStateColumn] = mapped_column(
        SAEnum(EventStateColumn, name="event_state"),
        nullable=False,
        default=EventStateColumn.PENDING,
    )
    proposed_slots: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    accepted_slots: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    proposed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_state_change: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    state_change_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    materials: Mapped[list[dict]] = mapped_column(JSON, nullable=False, default=list)
    documents: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    signature: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
