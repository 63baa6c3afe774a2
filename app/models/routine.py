"""
DailyRoutine + RoutineSegment.

One routine per (user_id, date); the unique constraint is the final guard
against two concurrent generation requests for the same day.

complexity / adaptations are JSON-encoded Text.
Segments live in their own table so a segment's completion can be updated
without rewriting the routine.
"""
from datetime import datetime, date as date_type
from sqlalchemy import (
    Integer, String, Text, Boolean, DateTime, Date, Enum, ForeignKey, func, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
import enum

from app.db.base import Base


class FocusQuality(str, enum.Enum):
    high = "high"
    medium = "medium"
    low = "low"


class DailyRoutine(Base):
    __tablename__ = "daily_routines"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_routine_user_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    complexity_level: Mapped[str] = mapped_column(
        String(16), nullable=False, comment='"simple" | "moderate" | "complex"',
    )
    complexity: Mapped[str | None] = mapped_column(
        Text, nullable=True,
        comment="JSON object: task_count, deep_work_blocks, break_frequency, multitasking_allowed",
    )
    adaptations: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="JSON array of applied adaptation descriptions",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class RoutineSegment(Base):
    __tablename__ = "routine_segments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    routine_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("daily_routines.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    segment_type: Mapped[str] = mapped_column(String(32), nullable=False)
    activity: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, comment="minutes")
    priority: Mapped[str] = mapped_column(String(16), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    focus_quality: Mapped[str | None] = mapped_column(
        Enum(FocusQuality, name="focus_quality_enum"), nullable=True
    )
    actual_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
