"""
Routine schemas.

POST  /users/{user_id}/routines                                    → RoutineGenerateRequest → RoutineResponse
GET   /users/{user_id}/routines/{day}                              → RoutineResponse
PATCH /users/{user_id}/routines/{routine_id}/segments/{segment_id} → SegmentUpdate → SegmentResponse
GET   /users/{user_id}/performance                                 → PerformanceResponse
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.routine import FocusQuality


class RoutineGenerateRequest(BaseModel):
    day: Optional[date] = Field(
        default=None, description="Defaults to today (UTC).", examples=["2026-02-20"],
    )
    available_hours: Optional[float] = Field(
        default=None, gt=0, le=24, description="Overrides the profile value.",
    )
    seed: Optional[int] = Field(
        default=None, description="Seeds goal sampling for a reproducible routine.",
    )


class SegmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int
    position: int
    start_time: str
    end_time: str
    segment_type: str
    activity: str
    duration: int
    priority: str
    completed: bool
    focus_quality: Optional[str] = None
    actual_duration: Optional[int] = None
    notes: Optional[str] = None


class ComplexityOut(BaseModel):
    level: str
    task_count: int
    deep_work_blocks: int
    break_frequency: int
    multitasking_allowed: bool


class RoutineResponse(BaseModel):
    id: int
    user_id: str
    date: date
    completed: bool
    complexity: ComplexityOut
    segments: list[SegmentResponse]
    adaptations_applied: list[str]
    estimated_completion_time: int = Field(description="Sum of segment durations (minutes).")
    created: bool = Field(description="False when an existing routine was returned.")


class SegmentUpdate(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    completed: bool
    focus_quality: Optional[FocusQuality] = None
    actual_duration: Optional[int] = Field(default=None, ge=0)
    notes: Optional[str] = None


class PerformanceResponse(BaseModel):
    reference_date: date
    first_time_user: bool
    completion_rate: float
    consistency_score: float
    recent_failures: int
    recent_successes: int
    average_focus_quality: float
    preferred_activity_types: list[str]
    degraded_sources: list[str]
    complexity: ComplexityOut
