"""
Adaptation Engine — derives routine directives from an evening review.

Rules (each evaluated independently; several may fire)
-------------------------------------------------------
  1. ENERGY      energy_level <= 3                         → simplify            0.8
  2. MOOD        mood <= 4                                 → adjust_timing       0.6
  3. COMPLETION  completion rate < 0.5                     → simplify            0.9
                 completion rate > 0.9 AND energy >= 7     → increase_complexity 0.7
     (rate = the review's own accomplished / (accomplished + missed) when it
      lists any task, else the snapshot's completion_rate; skipped with neither)
  4. MISSED      only when tasks were missed; reasons mention
                   time / busy / schedule                  → adjust_timing       0.7
                   tired / energy / exhausted / fatigue    → simplify            0.8
                   anything else                           → simplify            0.6
  5. INSIGHTS    "overwhelmed" / "too much"                → simplify            0.9
                 "morning" + difficult / hard / struggle   → adjust_timing       0.7
                 "too easy" / "too simple"                 → increase_complexity 0.8

Output is in rule order, not sorted. Use sort_by_impact() to prioritize.

Dispatch (target = review date + 1)
-----------------------------------
  Routine exists → directives become segment adjustments applied now:
      simplify            → task_reduction     lowest-priority pending segment → low
      increase_complexity → complexity_change  medium pending segments → high
      adjust_timing       → timing_shift       swap morning / afternoon content
      change_focus        → complexity_change  recorded only
    and the stored complexity moves one tier (complexity.apply_adaptations).
  No routine    → merged into pending_adaptations (user_id, target_date);
                  consumed by the next routine generation for that date.

Best-effort: run_adaptations() never raises. Any failure is logged and an
empty list is returned so the review itself is still saved.

Public API
----------
derive_adaptations(review, snapshot)                        -> list[RoutineAdaptation]
sort_by_impact(adaptations)                                 -> list[RoutineAdaptation]
dispatch_adaptations(db, user_id, review_date, adaptations) -> DispatchResult
run_adaptations(db, user_id, review_date, review, snapshot) -> DispatchResult
pending_for(db, user_id, day)                               -> (PendingAdaptation | None, list)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, asdict, field
from datetime import date, timedelta
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from app.core.errors import DegradedComputationError
from app.models.pending_adaptation import PendingAdaptation
from app.models.routine import DailyRoutine, RoutineSegment
from app.services import complexity as complexity_svc
from app.services.behavior_log import EventType, record_event
from app.services.performance import PerformanceSnapshot

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

class AdaptationType:
    SIMPLIFY            = "simplify"
    INCREASE_COMPLEXITY = "increase_complexity"
    ADJUST_TIMING       = "adjust_timing"
    CHANGE_FOCUS        = "change_focus"


class AdjustmentType:
    TASK_REDUCTION    = "task_reduction"
    COMPLEXITY_CHANGE = "complexity_change"
    TIMING_SHIFT      = "timing_shift"


_ADJUSTMENT_FOR = {
    AdaptationType.SIMPLIFY:            AdjustmentType.TASK_REDUCTION,
    AdaptationType.INCREASE_COMPLEXITY: AdjustmentType.COMPLEXITY_CHANGE,
    AdaptationType.ADJUST_TIMING:       AdjustmentType.TIMING_SHIFT,
    AdaptationType.CHANGE_FOCUS:        AdjustmentType.COMPLEXITY_CHANGE,
}

_LOW_ENERGY      = 3
_LOW_MOOD        = 4
_LOW_COMPLETION  = 0.5
_HIGH_COMPLETION = 0.9
_GOOD_ENERGY     = 7

_TIME_WORDS       = ("time", "busy", "schedule")
_ENERGY_WORDS     = ("tired", "energy", "exhausted", "fatigue")
_OVERWHELM_WORDS  = ("overwhelmed", "too much")
_DIFFICULTY_WORDS = ("difficult", "hard", "struggle", "tough")
_TOO_EASY_WORDS   = ("too easy", "too simple")

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class RoutineAdaptation:
    type: str
    description: str
    reason: str
    impact_score: float     # (0, 1]

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "RoutineAdaptation":
        return cls(
            type=str(data["type"]),
            description=str(data["description"]),
            reason=str(data.get("reason", "")),
            impact_score=float(data["impact_score"]),
        )


@dataclass
class ReviewInput:
    """The review fields the rules read. Built from an EveningReview row."""
    accomplished: list[str]
    missed: list[str]
    reasons: list[str]
    mood: int
    energy_level: int
    insights: str = ""


@dataclass
class DispatchResult:
    target_date: date
    adaptations: list[RoutineAdaptation] = field(default_factory=list)
    destination: Optional[str] = None     # "routine" | "pending" | None
    adjustments: list[dict] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Individual rule evaluators
# ---------------------------------------------------------------------------

def _rule_energy(review: ReviewInput, out: list[RoutineAdaptation]) -> None:
    if review.energy_level > _LOW_ENERGY:
        return
    out.append(RoutineAdaptation(
        type=AdaptationType.SIMPLIFY,
        description="Reduce routine complexity due to low energy levels",
        reason=f"Energy level reported as {review.energy_level}/10",
        impact_score=0.8,
    ))


def _rule_mood(review: ReviewInput, out: list[RoutineAdaptation]) -> None:
    if review.mood > _LOW_MOOD:
        return
    out.append(RoutineAdaptation(
        type=AdaptationType.ADJUST_TIMING,
        description="Shift challenging tasks away from low-mood periods",
        reason=f"Low mood ({review.mood}/10) may affect task completion",
        impact_score=0.6,
    ))


def _completion_rate(review: ReviewInput, snapshot: Optional[PerformanceSnapshot]) -> Optional[float]:
    total = len(review.accomplished) + len(review.missed)
    if total:
        return len(review.accomplished) / total
    if snapshot is not None:
        return snapshot.completion_rate
    return None


def _rule_completion(
    review: ReviewInput,
    snapshot: Optional[PerformanceSnapshot],
    out: list[RoutineAdaptation],
) -> None:
    rate = _completion_rate(review, snapshot)
    if rate is None:
        return
    pct = round(rate * 100)
    if rate < _LOW_COMPLETION:
        out.append(RoutineAdaptation(
            type=AdaptationType.SIMPLIFY,
            description="Reduce number of daily tasks to improve completion rate",
            reason=f"Low completion rate: {pct}%",
            impact_score=0.9,
        ))
    elif rate > _HIGH_COMPLETION and review.energy_level >= _GOOD_ENERGY:
        out.append(RoutineAdaptation(
            type=AdaptationType.INCREASE_COMPLEXITY,
            description="Increase routine challenge based on high performance",
            reason=f"High completion rate ({pct}%) and good energy",
            impact_score=0.7,
        ))


def _mentions(texts: Iterable[str], words: Iterable[str]) -> bool:
    lowered = [t.lower() for t in texts]
    return any(w in t for t in lowered for w in words)


def _rule_missed_tasks(review: ReviewInput, out: list[RoutineAdaptation]) -> None:
    if not review.missed:
        return
    if _mentions(review.reasons, _TIME_WORDS):
        out.append(RoutineAdaptation(
            type=AdaptationType.ADJUST_TIMING,
            description="Redistribute tasks to better align with available time",
            reason="Time-related obstacles identified in missed tasks",
            impact_score=0.7,
        ))
    elif _mentions(review.reasons, _ENERGY_WORDS):
        out.append(RoutineAdaptation(
            type=AdaptationType.SIMPLIFY,
            description="Reduce task complexity to match energy levels",
            reason="Energy-related obstacles identified in missed tasks",
            impact_score=0.8,
        ))
    else:
        out.append(RoutineAdaptation(
            type=AdaptationType.SIMPLIFY,
            description="Reduce number of tasks to improve completion rate",
            reason=f"{len(review.missed)} tasks missed without clear pattern",
            impact_score=0.6,
        ))


def _rule_insights(review: ReviewInput, out: list[RoutineAdaptation]) -> None:
    text = (review.insights or "").lower()
    if not text:
        return
    if _mentions([text], _OVERWHELM_WORDS):
        out.append(RoutineAdaptation(
            type=AdaptationType.SIMPLIFY,
            description="Reduce routine complexity based on user feedback",
            reason="User reported feeling overwhelmed",
            impact_score=0.9,
        ))
    if "morning" in text and _mentions([text], _DIFFICULTY_WORDS):
        out.append(RoutineAdaptation(
            type=AdaptationType.ADJUST_TIMING,
            description="Move challenging tasks away from morning hours",
            reason="User reported morning difficulties",
            impact_score=0.7,
        ))
    if _mentions([text], _TOO_EASY_WORDS):
        out.append(RoutineAdaptation(
            type=AdaptationType.INCREASE_COMPLEXITY,
            description="Increase routine challenge based on user feedback",
            reason="User indicated current routine is too easy",
            impact_score=0.8,
        ))


# ---------------------------------------------------------------------------
# Public — pure derivation
# ---------------------------------------------------------------------------

def derive_adaptations(
    review: ReviewInput,
    snapshot: Optional[PerformanceSnapshot] = None,
) -> list[RoutineAdaptation]:
    out: list[RoutineAdaptation] = []
    _rule_energy(review, out)
    _rule_mood(review, out)
    _rule_completion(review, snapshot, out)
    _rule_missed_tasks(review, out)
    _rule_insights(review, out)
    return out


def sort_by_impact(adaptations: Iterable[RoutineAdaptation]) -> list[RoutineAdaptation]:
    return sorted(adaptations, key=lambda a: a.impact_score, reverse=True)


def to_adjustments(adaptations: Iterable[RoutineAdaptation]) -> list[dict]:
    return [
        {
            "adjustment_type": _ADJUSTMENT_FOR.get(a.type, AdjustmentType.COMPLEXITY_CHANGE),
            "source_type": a.type,
            "description": a.description,
            "reason": a.reason,
        }
        for a in adaptations
    ]


# ---------------------------------------------------------------------------
# Segment adjustments on an existing routine
# ---------------------------------------------------------------------------

def _reduce_tasks(pending: list[RoutineSegment]) -> None:
    if not pending:
        return
    # Lowest priority first, later position breaks ties
    target = max(pending, key=lambda s: (_PRIORITY_RANK.get(s.priority, 1), s.position))
    target.priority = "low"


def _promote_medium(pending: list[RoutineSegment]) -> None:
    for seg in pending:
        if seg.priority == "medium":
            seg.priority = "high"


def _swap_morning_afternoon(pending: list[RoutineSegment]) -> bool:
    by_pos = {s.position: s for s in pending}
    morning, afternoon = by_pos.get(0), by_pos.get(1)
    if morning is None or afternoon is None:
        return False
    for attr in ("segment_type", "activity", "priority"):
        a, b = getattr(morning, attr), getattr(afternoon, attr)
        setattr(morning, attr, b)
        setattr(afternoon, attr, a)
    return True


def _apply_to_routine(
    db: Session,
    routine: DailyRoutine,
    adaptations: list[RoutineAdaptation],
) -> list[dict]:
    applied = json.loads(routine.adaptations or "[]")
    fresh = [a for a in adaptations if a.description not in applied]
    if not fresh:
        return []

    pending = (
        db.query(RoutineSegment)
        .filter(RoutineSegment.routine_id == routine.id, RoutineSegment.completed.is_(False))
        .order_by(RoutineSegment.position)
        .all()
    )
    adjustments = to_adjustments(sort_by_impact(fresh))
    swapped = False
    for adj in adjustments:
        kind = adj["adjustment_type"]
        if kind == AdjustmentType.TASK_REDUCTION:
            _reduce_tasks(pending)
        elif kind == AdjustmentType.COMPLEXITY_CHANGE:
            if adj["source_type"] == AdaptationType.INCREASE_COMPLEXITY:
                _promote_medium(pending)
        elif kind == AdjustmentType.TIMING_SHIFT and not swapped:
            swapped = _swap_morning_afternoon(pending)

    current = complexity_svc.from_dict(json.loads(routine.complexity or "null"))
    stepped = complexity_svc.apply_adaptations(current, fresh)
    routine.complexity_level = stepped.level
    routine.complexity = json.dumps(stepped.to_dict())
    routine.adaptations = json.dumps(applied + [a.description for a in fresh])
    return adjustments


def _merge_pending(
    db: Session,
    user_id: str,
    target: date,
    source_date: date,
    adaptations: list[RoutineAdaptation],
) -> PendingAdaptation:
    row = (
        db.query(PendingAdaptation)
        .filter(PendingAdaptation.user_id == user_id, PendingAdaptation.target_date == target)
        .first()
    )
    payload = [a.to_dict() for a in adaptations]
    if row is None:
        row = PendingAdaptation(
            user_id=user_id,
            target_date=target,
            source_date=source_date,
            adaptations=json.dumps(payload),
        )
        db.add(row)
    else:
        existing = json.loads(row.adaptations or "[]")
        seen = {(d["type"], d["description"]) for d in existing}
        existing.extend(d for d in payload if (d["type"], d["description"]) not in seen)
        row.adaptations = json.dumps(existing)
        row.source_date = source_date
        row.consumed_at = None
    db.flush()
    return row


# ---------------------------------------------------------------------------
# Public — dispatch
# ---------------------------------------------------------------------------

def dispatch_adaptations(
    db: Session,
    user_id: str,
    review_date: date,
    adaptations: list[RoutineAdaptation],
) -> DispatchResult:
    """Apply to tomorrow's routine or queue as pending. Caller commits."""
    target = review_date + timedelta(days=1)
    result = DispatchResult(target_date=target, adaptations=adaptations)
    if not adaptations:
        return result

    routine = (
        db.query(DailyRoutine)
        .filter(DailyRoutine.user_id == user_id, DailyRoutine.date == target)
        .first()
    )
    if routine is not None:
        result.adjustments = _apply_to_routine(db, routine, adaptations)
        result.destination = "routine"
        db.flush()
        record_event(db, user_id, EventType.ADAPTATIONS_APPLIED, target, {
            "routine_id": routine.id,
            "source_date": str(review_date),
            "adaptations": [a.to_dict() for a in adaptations],
            "adjustments": result.adjustments,
        })
    else:
        _merge_pending(db, user_id, target, review_date, adaptations)
        result.destination = "pending"
        record_event(db, user_id, EventType.ADAPTATIONS_PENDING, target, {
            "source_date": str(review_date),
            "adaptations": [a.to_dict() for a in adaptations],
        })
    return result


def run_adaptations(
    db: Session,
    user_id: str,
    review_date: date,
    review: ReviewInput,
    snapshot: Optional[PerformanceSnapshot],
) -> DispatchResult:
    """
    Derive and dispatch inside a savepoint. Never raises: on failure the
    savepoint is rolled back and an empty result is returned.
    """
    target = review_date + timedelta(days=1)
    savepoint = db.begin_nested()
    try:
        adaptations = derive_adaptations(review, snapshot)
        result = dispatch_adaptations(db, user_id, review_date, adaptations)
        savepoint.commit()
        return result
    except Exception as exc:
        savepoint.rollback()
        degraded = DegradedComputationError("adaptations", exc)
        logger.warning(
            "%s User %s, review %s.", degraded.message, user_id, review_date, exc_info=True,
        )
        return DispatchResult(target_date=target)


def pending_for(
    db: Session,
    user_id: str,
    day: date,
) -> tuple[Optional[PendingAdaptation], list[RoutineAdaptation]]:
    """Unconsumed pending directives for (user, day)."""
    row = (
        db.query(PendingAdaptation)
        .filter(
            PendingAdaptation.user_id == user_id,
            PendingAdaptation.target_date == day,
            PendingAdaptation.consumed_at.is_(None),
        )
        .first()
    )
    if row is None:
        return None, []
    try:
        items = [RoutineAdaptation.from_dict(d) for d in json.loads(row.adaptations or "[]")]
    except (ValueError, KeyError, TypeError):
        logger.warning("Unreadable pending adaptations row %s ignored", row.id)
        return row, []
    return row, items
