"""
UserProfile — the profile provider's persisted record.

One row per user. Goal lists are JSON-encoded Text (stdlib json, no extra
column types), mirroring how lists are stored elsewhere in the schema.
"""
from datetime import datetime
from sqlalchemy import Integer, String, Text, Float, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class UserProfile(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    wake_up_time: Mapped[str | None] = mapped_column(
        String(5), nullable=True, comment='"HH:MM", 24h clock',
    )
    sleep_time: Mapped[str | None] = mapped_column(
        String(5), nullable=True,
        comment='"HH:MM"; earlier than wake_up_time means after midnight',
    )
    available_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    academic_goals: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="JSON array of goal strings",
    )
    skill_goals: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="JSON array of goal strings",
    )
    energy_pattern: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
