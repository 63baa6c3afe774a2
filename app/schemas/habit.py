"""
Habit schemas.

POST  /users/{user_id}/habits                        → HabitCreate     → HabitResponse
PATCH /users/{user_id}/habits/{habit_id}             → HabitUpdate     → HabitResponse
PUT   /users/{user_id}/habits/{habit_id}/completions → CompletionUpsert → CompletionResponse
GET   /users/{user_id}/habits/streaks                → list[HabitStreakResponse]
GET   /users/{user_id}/habits/consistency            → ConsistencySummaryResponse
GET   /users/{user_id}/habits/stack-suggestions      → list[StackSuggestionResponse]
"""
from __future__ import annotations

from datetime import date
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.habit import HabitFrequency, CompletionQuality


class HabitCreate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    name: Annotated[str, Field(min_length=1, max_length=255, examples=["Read 20 pages"])]
    description: Optional[str] = None
    frequency: HabitFrequency = HabitFrequency.daily
    cue: Optional[str] = Field(default=None, examples=["After morning coffee"])
    reward: Optional[str] = None
    stacked_after: Optional[int] = Field(
        default=None, description="Habit id this one is chained after.",
    )

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip() if isinstance(v, str) else v
        if not stripped:
            raise ValueError("name must not be empty after stripping whitespace")
        return stripped


class HabitUpdate(BaseModel):
    """Partial update; only fields present in the body are applied."""
    model_config = ConfigDict(use_enum_values=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    frequency: Optional[HabitFrequency] = None
    cue: Optional[str] = None
    reward: Optional[str] = None
    stacked_after: Optional[int] = None
    is_active: Optional[bool] = None


class HabitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int
    user_id: str
    name: str
    description: Optional[str] = None
    frequency: str
    cue: Optional[str] = None
    reward: Optional[str] = None
    stacked_after: Optional[int] = None
    is_active: bool


class HabitDeleteResponse(BaseModel):
    id: int
    deleted: bool = Field(description="True when the row was removed.")
    deactivated: bool = Field(description="True when the habit was soft-disabled instead.")


class CompletionUpsert(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    day: Optional[date] = Field(
        default=None, description="Defaults to today (UTC).", examples=["2026-02-20"],
    )
    completed: bool
    quality: Optional[CompletionQuality] = None
    notes: Optional[str] = None


class CompletionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int
    habit_id: int
    date: date
    completed: bool
    quality: Optional[str] = None
    notes: Optional[str] = None


class HabitStreakResponse(BaseModel):
    habit_id: int
    habit_name: str
    current_streak: int
    longest_streak: int
    last_completed: Optional[date] = None
    consistency_percentage: float = Field(ge=0, le=100)


class ConsistencySummaryResponse(BaseModel):
    window_days: int
    overall_consistency: float
    strongest_habit: Optional[str] = None
    weakest_habit: Optional[str] = None
    habits: list[HabitStreakResponse]
    insights: list[str]
    recommendations: list[str]


class StackSuggestionResponse(BaseModel):
    existing_habit_id: int = Field(..., description="The anchor habit to stack after.")
    existing_habit_name: str
    suggested_new_habit: str = Field(..., examples=["meditation"])
    reason: str
    confidence_score: float = Field(..., ge=0.0, le=1.0)
