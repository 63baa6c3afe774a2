"""
Evening review service.

Primary write first, enrichment after:
  1. the review row is saved and committed (conflict → 409, nothing else runs)
  2. adaptations are derived and dispatched (best-effort, own savepoint)
  3. performance insights are computed (best-effort)
A failure in 2 or 3 is logged and yields an empty result; the review stays.

Public API
----------
create_review(db, user_id, data)              -> ReviewOutcome
update_review(db, user_id, review_id, data)   -> ReviewOutcome
review_history(db, user_id, days, as_of)      -> (list[EveningReview], ReviewAnalysis)
review_lists(review)                          -> dict of decoded list columns
"""
from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import DegradedComputationError, NotFoundError, ReviewAlreadyExistsError
from app.models.evening_review import EveningReview
from app.schemas.review import ReviewCreate, ReviewUpdate
from app.services.adaptation_engine import DispatchResult, ReviewInput, run_adaptations
from app.services.performance import get_performance_snapshot

logger = logging.getLogger(__name__)

_LIST_FIELDS = ("accomplished", "missed", "reasons", "tomorrow_tasks")
_INSIGHT_WINDOW_DAYS = 14
_TREND_SPAN = 3


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class PerformanceInsight:
    category: str
    insight: str
    trend: str
    recommendation: str


@dataclass
class ReviewOutcome:
    review: EveningReview
    dispatch: DispatchResult
    insights: list[PerformanceInsight] = field(default_factory=list)


@dataclass
class ReviewAnalysis:
    total_reviews: int
    completion_rate: float
    average_mood: float
    average_energy: float
    common_obstacles: list[str]
    mood_trend: str
    energy_trend: str
    productivity_insights: list[str]


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def review_lists(review: EveningReview) -> dict[str, list[str]]:
    return {name: json.loads(getattr(review, name) or "[]") for name in _LIST_FIELDS}


def _as_input(review: EveningReview) -> ReviewInput:
    lists = review_lists(review)
    return ReviewInput(
        accomplished=lists["accomplished"],
        missed=lists["missed"],
        reasons=lists["reasons"],
        mood=review.mood,
        energy_level=review.energy_level,
        insights=review.insights or "",
    )


# ---------------------------------------------------------------------------
# Trend helpers (reviews newest first)
# ---------------------------------------------------------------------------

def _task_completion(reviews: list[EveningReview]) -> float:
    done = total = 0
    for r in reviews:
        lists = review_lists(r)
        done += len(lists["accomplished"])
        total += len(lists["accomplished"]) + len(lists["missed"])
    return done / total if total else 0.0


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _trend(recent: float, older: float) -> str:
    if recent > older:
        return "improving"
    if recent < older:
        return "declining"
    return "stable"


def _score_trend(reviews: list[EveningReview], attr: str) -> str:
    older = reviews[_TREND_SPAN:_TREND_SPAN * 2]
    if not older:
        return "stable"
    recent = reviews[:_TREND_SPAN]
    return _trend(
        _mean([getattr(r, attr) for r in recent]),
        _mean([getattr(r, attr) for r in older]),
    )


def _mood_label(avg: float) -> str:
    if avg >= 7:
        return "positive"
    if avg >= 4:
        return "neutral"
    return "challenging"


# ---------------------------------------------------------------------------
# Performance insights (best-effort)
# ---------------------------------------------------------------------------

def _productivity_insight(reviews: list[EveningReview]) -> PerformanceInsight:
    recent = _task_completion(reviews[:_TREND_SPAN])
    older_reviews = reviews[_TREND_SPAN:_TREND_SPAN * 2]
    trend = _trend(recent, _task_completion(older_reviews)) if older_reviews else "stable"
    pct = round(recent * 100)

    if pct < 50:
        rec = "Consider simplifying your daily routine to improve completion rates"
    elif pct > 90 and trend == "improving":
        rec = "You're doing great! Consider gradually increasing your routine complexity"
    elif trend == "declining":
        rec = "Focus on identifying and removing obstacles that prevent task completion"
    else:
        rec = "Maintain your current approach - your productivity is stable"
    return PerformanceInsight("productivity", f"Your task completion rate is {pct}%", trend, rec)


def _energy_insight(reviews: list[EveningReview]) -> PerformanceInsight:
    avg = round(_mean([r.energy_level for r in reviews[:_TREND_SPAN]]), 1)
    trend = _score_trend(reviews, "energy_level")
    if avg < 4:
        rec = "Focus on sleep, nutrition, and stress management to improve energy levels"
    elif trend == "declining":
        rec = "Consider adjusting your routine to better match your natural energy patterns"
    else:
        rec = "Your energy levels are good - continue your current habits"
    return PerformanceInsight("energy", f"Your average energy level is {avg}/10", trend, rec)


def _mood_insight(reviews: list[EveningReview]) -> PerformanceInsight:
    label = _mood_label(_mean([r.mood for r in reviews]))
    trend = _score_trend(reviews, "mood")
    if label == "challenging":
        rec = "Consider incorporating more enjoyable activities and self-care into your routine"
    elif trend == "declining":
        rec = "Pay attention to activities that boost your mood and include more of them"
    else:
        rec = "Your mood is stable - keep doing what works for you"
    return PerformanceInsight("mood", f"Your mood has been {label} recently", trend, rec)


def _recent_reviews(db: Session, user_id: str, end: date, days: int) -> list[EveningReview]:
    return (
        db.query(EveningReview)
        .filter(
            EveningReview.user_id == user_id,
            EveningReview.date <= end,
            EveningReview.date > end - timedelta(days=days),
        )
        .order_by(EveningReview.date.desc())
        .all()
    )


def performance_insights(db: Session, user_id: str, review: EveningReview) -> list[PerformanceInsight]:
    """Never raises; an empty list means the step failed."""
    try:
        reviews = _recent_reviews(db, user_id, review.date, _INSIGHT_WINDOW_DAYS)
        if not reviews:
            return []
        insights = [
            _productivity_insight(reviews),
            _energy_insight(reviews),
            _mood_insight(reviews),
        ]
        missed = review_lists(review)["missed"]
        if missed:
            insights.append(PerformanceInsight(
                "focus",
                f"You missed {len(missed)} tasks today",
                "declining",
                "Consider breaking large tasks into smaller, manageable chunks",
            ))
        return insights
    except Exception as exc:
        degraded = DegradedComputationError("insights", exc)
        logger.warning("%s User %s, review %s.", degraded.message, user_id, review.date, exc_info=True)
        return []


# ---------------------------------------------------------------------------
# Enrichment
# ---------------------------------------------------------------------------

def _enrich(db: Session, user_id: str, review: EveningReview) -> ReviewOutcome:
    snapshot = get_performance_snapshot(db, user_id, review.date + timedelta(days=1))
    dispatch = run_adaptations(db, user_id, review.date, _as_input(review), snapshot)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Adaptations for user %s on %s not saved", user_id, review.date, exc_info=True)
        dispatch = DispatchResult(target_date=dispatch.target_date)
    db.refresh(review)
    return ReviewOutcome(
        review=review,
        dispatch=dispatch,
        insights=performance_insights(db, user_id, review),
    )


# ---------------------------------------------------------------------------
# Public — create / update
# ---------------------------------------------------------------------------

def get_review(db: Session, user_id: str, review_id: int) -> EveningReview:
    review = (
        db.query(EveningReview)
        .filter(EveningReview.id == review_id, EveningReview.user_id == user_id)
        .first()
    )
    if review is None:
        raise NotFoundError("EveningReview", review_id)
    return review


def create_review(db: Session, user_id: str, data: ReviewCreate) -> ReviewOutcome:
    day = data.day or _today()
    exists = (
        db.query(EveningReview.id)
        .filter(EveningReview.user_id == user_id, EveningReview.date == day)
        .first()
        is not None
    )
    if exists:
        raise ReviewAlreadyExistsError(day)

    review = EveningReview(
        user_id=user_id,
        date=day,
        accomplished=json.dumps(data.accomplished),
        missed=json.dumps(data.missed),
        reasons=json.dumps(data.reasons),
        tomorrow_tasks=json.dumps(data.tomorrow_tasks),
        mood=data.mood,
        energy_level=data.energy_level,
        insights=data.insights,
    )
    db.add(review)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ReviewAlreadyExistsError(day)
    db.refresh(review)
    logger.info("Evening review %s saved for user %s on %s", review.id, user_id, day)

    return _enrich(db, user_id, review)


_ADAPTATION_INPUTS = {"accomplished", "missed", "reasons", "mood", "energy_level", "insights"}


def update_review(db: Session, user_id: str, review_id: int, data: ReviewUpdate) -> ReviewOutcome:
    """Patch the given fields; adaptations are re-run when their inputs changed."""
    review = get_review(db, user_id, review_id)
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

    changed: set[str] = set()
    for key, value in changes.items():
        stored = json.dumps(value) if key in _LIST_FIELDS else value
        if getattr(review, key) != stored:
            setattr(review, key, stored)
            changed.add(key)
    db.commit()
    db.refresh(review)

    if changed & _ADAPTATION_INPUTS:
        return _enrich(db, user_id, review)
    return ReviewOutcome(
        review=review,
        dispatch=DispatchResult(target_date=review.date + timedelta(days=1)),
        insights=performance_insights(db, user_id, review),
    )


# ---------------------------------------------------------------------------
# Public — history
# ---------------------------------------------------------------------------

def analyze_reviews(reviews: list[EveningReview]) -> ReviewAnalysis:
    """reviews newest first."""
    if not reviews:
        return ReviewAnalysis(0, 0.0, 0.0, 0.0, [], "stable", "stable", [])

    completion = _task_completion(reviews)
    avg_mood = _mean([r.mood for r in reviews])
    avg_energy = _mean([r.energy_level for r in reviews])

    reasons = Counter(
        reason for r in reviews for reason in review_lists(r)["reasons"]
    )
    obstacles = [reason for reason, _ in reasons.most_common(5)]

    productivity: list[str] = []
    if completion > 0.8:
        productivity.append("You have excellent task completion consistency")
    elif completion < 0.5:
        productivity.append("Consider reducing daily task load to improve completion rates")
    if avg_mood > 7 and avg_energy > 7:
        productivity.append("Your high mood and energy levels support good productivity")

    return ReviewAnalysis(
        total_reviews=len(reviews),
        completion_rate=round(completion, 4),
        average_mood=round(avg_mood, 2),
        average_energy=round(avg_energy, 2),
        common_obstacles=obstacles,
        mood_trend=_score_trend(reviews, "mood"),
        energy_trend=_score_trend(reviews, "energy_level"),
        productivity_insights=productivity,
    )


def review_history(
    db: Session,
    user_id: str,
    days: Optional[int] = None,
    as_of: Optional[date] = None,
) -> tuple[list[EveningReview], ReviewAnalysis]:
    reviews = _recent_reviews(db, user_id, as_of or _today(), days or settings.REVIEW_HISTORY_DAYS)
    return reviews, analyze_reviews(reviews)
