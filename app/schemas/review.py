"""
Evening review schemas.

POST  /users/{user_id}/evening-reviews             → ReviewCreate → ReviewResult
PATCH /users/{user_id}/evening-reviews/{review_id} → ReviewUpdate → ReviewResult
GET   /users/{user_id}/evening-reviews             → ReviewHistoryResponse
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.common import clean_list

Score = Annotated[int, Field(ge=1, le=10)]


class ReviewCreate(BaseModel):
    day: Optional[date] = Field(
        default=None, description="Defaults to today (UTC).", examples=["2026-02-20"],
    )
    accomplished: list[str]
    missed: list[str]
    reasons: list[str] = Field(default_factory=list)
    tomorrow_tasks: list[str]
    mood: Score
    energy_level: Score
    insights: str = ""

    @field_validator("accomplished", "missed", "reasons", "tomorrow_tasks")
    @classmethod
    def strip_items(cls, v: list[str]) -> list[str]:
        return clean_list(v)


class ReviewUpdate(BaseModel):
    """Patch a subset of fields; absent fields are left unchanged."""
    accomplished: Optional[list[str]] = None
    missed: Optional[list[str]] = None
    reasons: Optional[list[str]] = None
    tomorrow_tasks: Optional[list[str]] = None
    mood: Optional[Score] = None
    energy_level: Optional[Score] = None
    insights: Optional[str] = None

    @field_validator("accomplished", "missed", "reasons", "tomorrow_tasks")
    @classmethod
    def strip_items(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return None if v is None else clean_list(v)


class ReviewOut(BaseModel):
    id: int
    user_id: str
    date: date
    accomplished: list[str]
    missed: list[str]
    reasons: list[str]
    tomorrow_tasks: list[str]
    mood: int
    energy_level: int
    insights: str


class AdaptationOut(BaseModel):
    type: str
    description: str
    reason: str
    impact_score: float = Field(gt=0, le=1)


class InsightOut(BaseModel):
    category: str = Field(description='"productivity" | "energy" | "mood" | "focus"')
    insight: str
    trend: str = Field(description='"improving" | "declining" | "stable"')
    recommendation: str


class ReviewResult(BaseModel):
    review: ReviewOut
    adaptations: list[AdaptationOut]
    dispatched_to: Optional[str] = Field(
        default=None, description='"routine" | "pending" | null when nothing was dispatched.',
    )
    target_date: date = Field(description="Day the adaptations apply to.")
    insights: list[InsightOut]


class ReviewAnalysis(BaseModel):
    total_reviews: int
    completion_rate: float
    average_mood: float
    average_energy: float
    common_obstacles: list[str]
    mood_trend: str
    energy_trend: str
    productivity_insights: list[str]


class ReviewHistoryResponse(BaseModel):
    items: list[ReviewOut]
    analysis: ReviewAnalysis
