"""
Performance Aggregator.

Combines the user's recent signals into one ephemeral PerformanceSnapshot.
Nothing here is persisted: the snapshot is recomputed on every request.

Window
------
The PERFORMANCE_WINDOW_DAYS (default 14) days strictly before the
reference date: [reference_date - N, reference_date - 1].

Sources → fields
----------------
  daily_routines.completed      → completion_rate, failures / successes
  routine_segments.focus_quality → average_focus_quality
  routine_segments.completed    → preferred_activity_types (ratio > 0.7)
  habit_completions             → consistency_score (mean 30-day consistency)
  evening_reviews               → completion_rate fallback, failures /
                                  successes, average mood / energy

Failure policy
--------------
A source that cannot be read is logged and replaced by its default:
  completion_rate=0.7  consistency_score=0.7  recent_failures=2
  recent_successes=5   average_focus_quality=0.6
The aggregator never raises. A user with no data in any source gets None
(first-time user; the classifier then falls back to moderate).

Public API
----------
build_snapshot(routines, segments, habit_consistency, reviews) -> PerformanceSnapshot | None
get_performance_snapshot(db, user_id, reference_date)          -> PerformanceSnapshot | None
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.evening_review import EveningReview
from app.models.habit import Habit, HabitCompletion
from app.models.routine import DailyRoutine, RoutineSegment
from app.services.streaks import CompletionPoint, consistency_percentage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class PerformanceSnapshot:
    completion_rate: float            # 0.0 – 1.0
    consistency_score: float          # 0.0 – 1.0
    recent_failures: int
    recent_successes: int
    average_focus_quality: float      # 0.0 – 1.0
    preferred_activity_types: list[str] = field(default_factory=list)
    average_mood: Optional[float] = None
    average_energy: Optional[float] = None
    degraded_sources: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class SegmentSignal:
    segment_type: str
    completed: bool
    focus_quality: Optional[str] = None


@dataclass(frozen=True)
class ReviewSignal:
    accomplished: int
    missed: int
    mood: int
    energy_level: int


# Defaults used when a source is missing or unreadable
DEFAULT_COMPLETION_RATE   = 0.7
DEFAULT_CONSISTENCY_SCORE = 0.7
DEFAULT_RECENT_FAILURES   = 2
DEFAULT_RECENT_SUCCESSES  = 5
DEFAULT_FOCUS_UNREADABLE  = 0.6
DEFAULT_FOCUS_UNTAGGED    = 0.5

# What a first-time user is shown; classify(None) treats them as moderate
FIRST_TIME_DEFAULTS = PerformanceSnapshot(
    completion_rate=DEFAULT_COMPLETION_RATE,
    consistency_score=DEFAULT_CONSISTENCY_SCORE,
    recent_failures=DEFAULT_RECENT_FAILURES,
    recent_successes=DEFAULT_RECENT_SUCCESSES,
    average_focus_quality=DEFAULT_FOCUS_UNREADABLE,
)

FOCUS_SCALE = {"high": 1.0, "medium": 0.6, "low": 0.2}
PREFERRED_THRESHOLD = 0.7


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def routine_completion_rate(flags: list[bool]) -> float:
    if not flags:
        return 0.0
    return sum(1 for f in flags if f) / len(flags)


def average_focus_quality(segments: list[SegmentSignal]) -> float:
    scores = [FOCUS_SCALE[s.focus_quality] for s in segments if s.focus_quality in FOCUS_SCALE]
    if not scores:
        return DEFAULT_FOCUS_UNTAGGED
    return round(sum(scores) / len(scores), 4)


def preferred_activity_types(segments: list[SegmentSignal]) -> list[str]:
    totals: dict[str, int] = {}
    done: dict[str, int] = {}
    for s in segments:
        totals[s.segment_type] = totals.get(s.segment_type, 0) + 1
        if s.completed:
            done[s.segment_type] = done.get(s.segment_type, 0) + 1
    return sorted(
        t for t, n in totals.items()
        if done.get(t, 0) / n > PREFERRED_THRESHOLD
    )


def build_snapshot(
    routines: Optional[list[bool]],
    segments: Optional[list[SegmentSignal]],
    habit_consistency: Optional[list[float]],
    reviews: Optional[list[ReviewSignal]],
) -> Optional[PerformanceSnapshot]:
    """
    Combine per-source signals. A source passed as None could not be read
    and falls back to its default; an empty list means "no data".
    Returns None when every source was read and all of them are empty.
    """
    sources = {
        "routines": routines,
        "segments": segments,
        "habits": habit_consistency,
        "reviews": reviews,
    }
    degraded = [name for name, value in sources.items() if value is None]
    if not degraded and not any(sources.values()):
        return None

    routines = routines or []
    segments = segments or []
    habit_consistency = habit_consistency or []
    reviews = reviews or []

    accomplished = sum(r.accomplished for r in reviews)
    missed = sum(r.missed for r in reviews)

    if routines:
        completion_rate = routine_completion_rate(routines)
    elif accomplished + missed > 0:
        completion_rate = accomplished / (accomplished + missed)
    else:
        completion_rate = DEFAULT_COMPLETION_RATE

    if habit_consistency:
        consistency_score = sum(habit_consistency) / len(habit_consistency) / 100.0
    else:
        consistency_score = DEFAULT_CONSISTENCY_SCORE

    successes = sum(1 for f in routines if f) + accomplished
    failures = sum(1 for f in routines if not f) + missed
    if successes + failures == 0:
        successes, failures = DEFAULT_RECENT_SUCCESSES, DEFAULT_RECENT_FAILURES

    if "segments" in degraded:
        focus = DEFAULT_FOCUS_UNREADABLE
    else:
        focus = average_focus_quality(segments)

    return PerformanceSnapshot(
        completion_rate=round(completion_rate, 4),
        consistency_score=round(consistency_score, 4),
        recent_failures=failures,
        recent_successes=successes,
        average_focus_quality=focus,
        preferred_activity_types=preferred_activity_types(segments),
        average_mood=round(sum(r.mood for r in reviews) / len(reviews), 2) if reviews else None,
        average_energy=(
            round(sum(r.energy_level for r in reviews) / len(reviews), 2) if reviews else None
        ),
        degraded_sources=degraded,
    )


# ---------------------------------------------------------------------------
# Source readers (each may fail independently)
# ---------------------------------------------------------------------------

def _window(reference_date: date) -> tuple[date, date]:
    days = settings.PERFORMANCE_WINDOW_DAYS
    return reference_date - timedelta(days=days), reference_date - timedelta(days=1)


def _read_routines(db: Session, user_id: str, start: date, end: date) -> list[DailyRoutine]:
    return (
        db.query(DailyRoutine)
        .filter(
            DailyRoutine.user_id == user_id,
            DailyRoutine.date >= start,
            DailyRoutine.date <= end,
        )
        .all()
    )


def _read_segments(db: Session, routine_ids: list[int]) -> list[SegmentSignal]:
    if not routine_ids:
        return []
    rows = (
        db.query(RoutineSegment)
        .filter(RoutineSegment.routine_id.in_(routine_ids))
        .all()
    )
    return [
        SegmentSignal(
            segment_type=s.segment_type,
            completed=bool(s.completed),
            focus_quality=_ev(s.focus_quality) if s.focus_quality else None,
        )
        for s in rows
    ]


def _read_habit_consistency(db: Session, user_id: str, as_of: date) -> list[float]:
    window = settings.CONSISTENCY_WINDOW_DAYS
    habits = (
        db.query(Habit)
        .filter(Habit.user_id == user_id, Habit.is_active.is_(True))
        .all()
    )
    scores: list[float] = []
    for habit in habits:
        rows = (
            db.query(HabitCompletion)
            .filter(
                HabitCompletion.habit_id == habit.id,
                HabitCompletion.date >= as_of - timedelta(days=window),
                HabitCompletion.date <= as_of,
            )
            .all()
        )
        if not rows:
            continue
        points = [CompletionPoint(day=r.date, completed=bool(r.completed)) for r in rows]
        scores.append(consistency_percentage(points, window, as_of))
    return scores


def _read_reviews(db: Session, user_id: str, start: date, end: date) -> list[ReviewSignal]:
    rows = (
        db.query(EveningReview)
        .filter(
            EveningReview.user_id == user_id,
            EveningReview.date >= start,
            EveningReview.date <= end,
        )
        .all()
    )
    return [
        ReviewSignal(
            accomplished=len(json.loads(r.accomplished or "[]")),
            missed=len(json.loads(r.missed or "[]")),
            mood=r.mood,
            energy_level=r.energy_level,
        )
        for r in rows
    ]


def _guarded(db: Session, label: str, user_id: str, fn, *args):
    """Run one source reader in a savepoint; None if it failed."""
    savepoint = db.begin_nested()
    try:
        result = fn(db, *args)
        savepoint.commit()
        return result
    except Exception:
        savepoint.rollback()
        logger.warning("Performance source %r unavailable for user %s", label, user_id, exc_info=True)
        return None


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------

def get_performance_snapshot(
    db: Session,
    user_id: str,
    reference_date: Optional[date] = None,
) -> Optional[PerformanceSnapshot]:
    """Aggregate the window before reference_date (default: today)."""
    ref = reference_date or _today()
    start, end = _window(ref)

    routine_rows = _guarded(db, "routines", user_id, _read_routines, user_id, start, end)
    routines = None if routine_rows is None else [bool(r.completed) for r in routine_rows]
    if routine_rows is None:
        segments = None
    else:
        segments = _guarded(
            db, "segments", user_id, _read_segments, [r.id for r in routine_rows]
        )
    habits = _guarded(db, "habits", user_id, _read_habit_consistency, user_id, ref)
    reviews = _guarded(db, "reviews", user_id, _read_reviews, user_id, start, end)

    snapshot = build_snapshot(routines, segments, habits, reviews)
    if snapshot is not None and snapshot.degraded_sources:
        logger.info(
            "Snapshot for user %s on %s used defaults for %s",
            user_id, ref, ", ".join(snapshot.degraded_sources),
        )
    return snapshot
