"""
PendingAdaptation — adaptation directives waiting for a routine that does
not exist yet.

One row per (user_id, target_date). New directives for the same target are
merged into the existing row. consumed_at is set by the routine generator
when it applies them.
"""
from datetime import datetime, date
from sqlalchemy import Integer, String, Text, DateTime, Date, func, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class PendingAdaptation(Base):
    __tablename__ = "pending_adaptations"
    __table_args__ = (
        UniqueConstraint("user_id", "target_date", name="uq_pending_adaptation_user_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    target_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    source_date: Mapped[date] = mapped_column(
        Date, nullable=False, comment="Date of the evening review that produced them",
    )
    adaptations: Mapped[str] = mapped_column(
        Text, nullable=False,
        comment="JSON array of {type, description, reason, impact_score}",
    )
    consumed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
