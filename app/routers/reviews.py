"""
Evening reviews router.

POST  /users/{user_id}/evening-reviews              — save + adapt + insights
PATCH /users/{user_id}/evening-reviews/{review_id}  — patch, re-run adaptations
GET   /users/{user_id}/evening-reviews              — history + analysis
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.db.base import get_db
from app.models.evening_review import EveningReview
from app.schemas.common import ErrorResponse
from app.schemas.review import (
    AdaptationOut,
    InsightOut,
    ReviewAnalysis,
    ReviewCreate,
    ReviewHistoryResponse,
    ReviewOut,
    ReviewResult,
    ReviewUpdate,
)
from app.services import evening_review as review_svc

router = APIRouter(prefix="/users/{user_id}/evening-reviews", tags=["evening-reviews"])


def _review_out(review: EveningReview) -> ReviewOut:
    return ReviewOut(
        id=review.id,
        user_id=review.user_id,
        date=review.date,
        mood=review.mood,
        energy_level=review.energy_level,
        insights=review.insights or "",
        **review_svc.review_lists(review),
    )


def _result_out(outcome: review_svc.ReviewOutcome) -> ReviewResult:
    return ReviewResult(
        review=_review_out(outcome.review),
        adaptations=[AdaptationOut(**a.to_dict()) for a in outcome.dispatch.adaptations],
        dispatched_to=outcome.dispatch.destination,
        target_date=outcome.dispatch.target_date,
        insights=[
            InsightOut(
                category=i.category,
                insight=i.insight,
                trend=i.trend,
                recommendation=i.recommendation,
            )
            for i in outcome.insights
        ],
    )


@router.post(
    "",
    response_model=ReviewResult,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "A review for this day already exists."},
        422: {"model": ErrorResponse, "description": "mood / energy_level outside 1–10 or missing lists."},
    },
)
def create_evening_review(user_id: str, payload: ReviewCreate, db: Session = Depends(get_db)):
    """
    Saves the review first. Adaptation and insight steps are best-effort:
    if they fail the review is still returned with empty lists.
    """
    return _result_out(review_svc.create_review(db, user_id, payload))


@router.patch(
    "/{review_id}",
    response_model=ReviewResult,
    responses={404: {"model": ErrorResponse, "description": "Review not found."}},
)
def update_evening_review(
    user_id: str,
    review_id: int,
    payload: ReviewUpdate,
    db: Session = Depends(get_db),
):
    return _result_out(review_svc.update_review(db, user_id, review_id, payload))


@router.get("", response_model=ReviewHistoryResponse)
def list_evening_reviews(
    user_id: str,
    days: int = Query(default=30, ge=1, le=365),
    as_of: Optional[date] = Query(default=None, description="Window end. Defaults to today (UTC)."),
    db: Session = Depends(get_db),
):
    reviews, analysis = review_svc.review_history(db, user_id, days, as_of)
    return ReviewHistoryResponse(
        items=[_review_out(r) for r in reviews],
        analysis=ReviewAnalysis(**analysis.__dict__),
    )
