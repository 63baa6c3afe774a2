"""
BehaviorEvent — append-only behavioral log.

Written by app/services/behavior_log.py; read by GET /users/{user_id}/behavior/events.

event_type values:
  "segment_completion"           — a routine segment was marked (in)complete
  "routine_generated"            — a new DailyRoutine was created
  "routine_adaptations_applied"  — directives applied to an existing routine
  "routine_adaptations_pending"  — directives stored for a future routine

metadata: JSON-encoded dict stored as Text (no external deps).
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, DateTime, Date, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class BehaviorEvent(Base):
    __tablename__ = "behavior_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reference_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    event_metadata: Mapped[str | None] = mapped_column(
        "event_metadata", Text, nullable=True,
        comment="JSON-encoded dict with context specific to each event_type",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
