from datetime import datetime, date as date_type
from sqlalchemy import (
    Integer, String, Text, DateTime, Date, func, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class EveningReview(Base):
    """
    Once-per-day reflection. List columns are JSON-encoded Text.
    mood / energy_level are 1–10 (validated by the schema, enforced by CHECK).
    """

    __tablename__ = "evening_reviews"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_evening_review_user_date"),
        CheckConstraint("mood >= 1 AND mood <= 10", name="ck_evening_review_mood"),
        CheckConstraint(
            "energy_level >= 1 AND energy_level <= 10", name="ck_evening_review_energy"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    accomplished: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    missed: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    reasons: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    tomorrow_tasks: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    mood: Mapped[int] = mapped_column(Integer, nullable=False)
    energy_level: Mapped[int] = mapped_column(Integer, nullable=False)
    insights: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
