"""
Habits router.

POST   /users/{user_id}/habits                          — create (stacking validated)
GET    /users/{user_id}/habits                          — list
GET    /users/{user_id}/habits/streaks                  — streaks per active habit
GET    /users/{user_id}/habits/consistency              — summary + recommendations
GET    /users/{user_id}/habits/stack-suggestions        — new habits to chain after strong ones
PATCH  /users/{user_id}/habits/{habit_id}               — partial update
DELETE /users/{user_id}/habits/{habit_id}               — delete or soft-disable
PUT    /users/{user_id}/habits/{habit_id}/completions   — upsert one day's completion
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.common import ErrorResponse
from app.schemas.habit import (
    CompletionResponse,
    CompletionUpsert,
    ConsistencySummaryResponse,
    HabitCreate,
    HabitDeleteResponse,
    HabitResponse,
    HabitStreakResponse,
    HabitUpdate,
    StackSuggestionResponse,
)
from app.services import habits as habit_svc
from app.services.streaks import HabitStreak

router = APIRouter(prefix="/users/{user_id}/habits", tags=["habits"])

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Habit not found for this user."}}


def _streak_out(s: HabitStreak) -> HabitStreakResponse:
    return HabitStreakResponse(
        habit_id=s.habit_id,
        habit_name=s.habit_name,
        current_streak=s.current_streak,
        longest_streak=s.longest_streak,
        last_completed=s.last_completed,
        consistency_percentage=s.consistency_percentage,
    )


@router.post("", response_model=HabitResponse, status_code=status.HTTP_201_CREATED)
def create_habit(user_id: str, payload: HabitCreate, db: Session = Depends(get_db)):
    return habit_svc.create_habit(db, user_id, payload)


@router.get("", response_model=list[HabitResponse])
def list_habits(
    user_id: str,
    include_inactive: bool = Query(default=False, description="Include soft-disabled habits."),
    db: Session = Depends(get_db),
):
    return habit_svc.list_habits(db, user_id, include_inactive)


@router.get(
    "/streaks",
    response_model=list[HabitStreakResponse],
    summary="Current / longest streak and consistency per active habit",
)
def get_habit_streaks(
    user_id: str,
    as_of: Optional[date] = Query(default=None, description="Window end. Defaults to today (UTC)."),
    db: Session = Depends(get_db),
):
    return [_streak_out(s) for s in habit_svc.list_streaks(db, user_id, as_of=as_of)]


@router.get("/consistency", response_model=ConsistencySummaryResponse)
def get_consistency(
    user_id: str,
    window_days: int = Query(default=30, ge=1, le=365),
    as_of: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    summary = habit_svc.consistency_summary(db, user_id, window_days, as_of)
    return ConsistencySummaryResponse(
        window_days=summary.window_days,
        overall_consistency=summary.overall_consistency,
        strongest_habit=summary.strongest_habit,
        weakest_habit=summary.weakest_habit,
        habits=[_streak_out(s) for s in summary.habits],
        insights=summary.insights,
        recommendations=summary.recommendations,
    )


@router.get(
    "/stack-suggestions",
    response_model=list[StackSuggestionResponse],
    summary="Habits to stack after the most consistent ones",
)
def get_stack_suggestions(
    user_id: str,
    as_of: Optional[date] = Query(default=None, description="Window end. Defaults to today (UTC)."),
    db: Session = Depends(get_db),
):
    return [
        StackSuggestionResponse(
            existing_habit_id=s.existing_habit_id,
            existing_habit_name=s.existing_habit_name,
            suggested_new_habit=s.suggested_new_habit,
            reason=s.reason,
            confidence_score=s.confidence_score,
        )
        for s in habit_svc.suggest_stacks(db, user_id, as_of=as_of)
    ]


@router.patch("/{habit_id}", response_model=HabitResponse, responses=_NOT_FOUND)
def update_habit(user_id: str, habit_id: int, payload: HabitUpdate, db: Session = Depends(get_db)):
    return habit_svc.update_habit(db, user_id, habit_id, payload)


@router.delete(
    "/{habit_id}",
    response_model=HabitDeleteResponse,
    responses={
        **_NOT_FOUND,
        409: {"model": ErrorResponse, "description": "Other habits are stacked after this one."},
    },
)
def delete_habit(user_id: str, habit_id: int, db: Session = Depends(get_db)):
    deleted, deactivated = habit_svc.delete_habit(db, user_id, habit_id)
    return HabitDeleteResponse(id=habit_id, deleted=deleted, deactivated=deactivated)


@router.put("/{habit_id}/completions", response_model=CompletionResponse, responses=_NOT_FOUND)
def upsert_completion(
    user_id: str,
    habit_id: int,
    payload: CompletionUpsert,
    db: Session = Depends(get_db),
):
    """One record per habit per day; re-submitting a day updates it."""
    return habit_svc.record_completion(db, user_id, habit_id, payload)
