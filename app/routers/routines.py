"""
Routines router.

POST  /users/{user_id}/routines                                    — generate (idempotent per day)
GET   /users/{user_id}/routines/{day}                              — read
PATCH /users/{user_id}/routines/{routine_id}/segments/{segment_id} — record segment completion
GET   /users/{user_id}/performance                                 — snapshot + classified tier
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.schemas.common import ErrorResponse
from app.schemas.routine import (
    ComplexityOut,
    PerformanceResponse,
    RoutineGenerateRequest,
    RoutineResponse,
    SegmentResponse,
    SegmentUpdate,
)
from app.services.complexity import classify
from app.services.performance import FIRST_TIME_DEFAULTS, get_performance_snapshot
from app.services.routine_generator import (
    RoutineView,
    generate_routine,
    get_routine_by_date,
    update_segment,
)

router = APIRouter(prefix="/users/{user_id}", tags=["routines"])


def _ev(v) -> Optional[str]:
    if v is None:
        return None
    return v.value if hasattr(v, "value") else str(v)


def _segment_out(seg) -> SegmentResponse:
    return SegmentResponse(
        id=seg.id,
        position=seg.position,
        start_time=seg.start_time,
        end_time=seg.end_time,
        segment_type=seg.segment_type,
        activity=seg.activity,
        duration=seg.duration,
        priority=seg.priority,
        completed=seg.completed,
        focus_quality=_ev(seg.focus_quality),
        actual_duration=seg.actual_duration,
        notes=seg.notes,
    )


def _routine_out(view: RoutineView) -> RoutineResponse:
    return RoutineResponse(
        id=view.routine.id,
        user_id=view.routine.user_id,
        date=view.routine.date,
        completed=view.routine.completed,
        complexity=ComplexityOut(**view.complexity.to_dict()),
        segments=[_segment_out(s) for s in view.segments],
        adaptations_applied=view.adaptations_applied,
        estimated_completion_time=view.estimated_completion_time,
        created=view.created,
    )


@router.post(
    "/routines",
    response_model=RoutineResponse,
    summary="Generate the routine for a day (returns the existing one if present)",
    responses={
        200: {"description": "Routine already existed; returned unchanged."},
        201: {"description": "Routine generated."},
        404: {"model": ErrorResponse, "description": "No profile for this user."},
        422: {"model": ErrorResponse, "description": "Profile incomplete or invalid input."},
    },
    status_code=status.HTTP_201_CREATED,
)
def post_routine(
    user_id: str,
    response: Response,
    payload: Optional[RoutineGenerateRequest] = None,
    db: Session = Depends(get_db),
):
    payload = payload or RoutineGenerateRequest()
    view = generate_routine(
        db,
        user_id,
        day=payload.day,
        available_hours=payload.available_hours,
        seed=payload.seed,
    )
    if not view.created:
        response.status_code = status.HTTP_200_OK
    return _routine_out(view)


@router.get(
    "/routines/{day}",
    response_model=RoutineResponse,
    responses={404: {"model": ErrorResponse, "description": "No routine for this day."}},
)
def read_routine(user_id: str, day: date, db: Session = Depends(get_db)):
    return _routine_out(get_routine_by_date(db, user_id, day))


@router.patch(
    "/routines/{routine_id}/segments/{segment_id}",
    response_model=SegmentResponse,
    responses={404: {"model": ErrorResponse, "description": "Routine or segment not found."}},
)
def patch_segment(
    user_id: str,
    routine_id: int,
    segment_id: int,
    payload: SegmentUpdate,
    db: Session = Depends(get_db),
):
    return _segment_out(update_segment(db, user_id, routine_id, segment_id, payload))


@router.get("/performance", response_model=PerformanceResponse, tags=["performance"])
def read_performance(
    user_id: str,
    reference_date: Optional[date] = Query(default=None, description="Defaults to today (UTC)."),
    db: Session = Depends(get_db),
):
    """
    Snapshot of the window before `reference_date` and the tier it maps to.
    A user with no history gets the documented defaults and `moderate`.
    """
    ref = reference_date or datetime.now(tz=timezone.utc).date()
    snapshot = get_performance_snapshot(db, user_id, ref)
    tier = classify(snapshot)
    shown = snapshot or FIRST_TIME_DEFAULTS
    return PerformanceResponse(
        reference_date=ref,
        first_time_user=snapshot is None,
        completion_rate=shown.completion_rate,
        consistency_score=shown.consistency_score,
        recent_failures=shown.recent_failures,
        recent_successes=shown.recent_successes,
        average_focus_quality=shown.average_focus_quality,
        preferred_activity_types=shown.preferred_activity_types,
        degraded_sources=shown.degraded_sources,
        complexity=ComplexityOut(**tier.to_dict()),
    )
