"""
Habit service — CRUD, stacking DAG, completion upsert, streak listing,
stack suggestions.

Stacking
--------
stacked_after must reference a habit of the same user. The chain is checked
at write time: following stacked_after from the proposed parent must never
reach the habit itself. A habit with active habits stacked after it cannot
be deleted (HabitHasDependentsError).

Deletion
--------
  active dependents               → 409 HABIT_HAS_DEPENDENTS
  completions or inactive children → soft-disable (is_active = False)
  otherwise                        → row removed

Public API
----------
create_habit(db, user_id, data)                   -> Habit
list_habits(db, user_id, include_inactive)        -> list[Habit]
update_habit(db, user_id, habit_id, data)         -> Habit
delete_habit(db, user_id, habit_id)               -> (deleted, deactivated)
record_completion(db, user_id, habit_id, data)    -> HabitCompletion
list_streaks(db, user_id, as_of)                  -> list[HabitStreak]
consistency_summary(db, user_id, window_days, as_of) -> ConsistencySummary
suggest_stacks(db, user_id, as_of)                -> list[StackSuggestion]
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import HabitHasDependentsError, InvalidInputError, NotFoundError
from app.models.habit import Habit, HabitCompletion
from app.schemas.habit import CompletionUpsert, HabitCreate, HabitUpdate
from app.services.streaks import CompletionPoint, HabitStreak, calculate_streak

logger = logging.getLogger(__name__)


@dataclass
class ConsistencySummary:
    window_days: int
    overall_consistency: float
    strongest_habit: Optional[str]
    weakest_habit: Optional[str]
    habits: list[HabitStreak] = field(default_factory=list)
    insights: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class StackSuggestion:
    existing_habit_id: int
    existing_habit_name: str
    suggested_new_habit: str
    reason: str
    confidence_score: float          # 0.0 – 0.9


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _ev(v) -> str:
    return v.value if hasattr(v, "value") else str(v)


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def get_habit(db: Session, user_id: str, habit_id: int) -> Habit:
    habit = (
        db.query(Habit)
        .filter(Habit.id == habit_id, Habit.user_id == user_id)
        .first()
    )
    if habit is None:
        raise NotFoundError("Habit", habit_id)
    return habit


def _dependents(db: Session, habit_id: int, active_only: bool = True) -> list[Habit]:
    q = db.query(Habit).filter(Habit.stacked_after == habit_id)
    if active_only:
        q = q.filter(Habit.is_active.is_(True))
    return q.order_by(Habit.id).all()


def _check_stacking(
    db: Session,
    user_id: str,
    parent_id: int,
    habit_id: Optional[int] = None,
) -> None:
    """Parent must belong to the user; the chain above it must not contain habit_id."""
    if habit_id is not None and parent_id == habit_id:
        raise InvalidInputError("A habit cannot be stacked after itself.", field="stacked_after")

    parent = (
        db.query(Habit)
        .filter(Habit.id == parent_id, Habit.user_id == user_id)
        .first()
    )
    if parent is None:
        raise InvalidInputError(
            f"Invalid stacked_after habit reference: {parent_id}.", field="stacked_after",
        )
    if habit_id is None:
        return

    seen: set[int] = set()
    node = parent
    while node is not None and node.stacked_after is not None:
        if node.stacked_after == habit_id:
            raise InvalidInputError(
                f"Stacking habit {habit_id} after {parent_id} would create a cycle.",
                field="stacked_after",
            )
        if node.stacked_after in seen:
            break
        seen.add(node.stacked_after)
        node = db.get(Habit, node.stacked_after)


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------

def create_habit(db: Session, user_id: str, data: HabitCreate) -> Habit:
    if data.stacked_after is not None:
        _check_stacking(db, user_id, data.stacked_after)

    habit = Habit(
        user_id=user_id,
        name=data.name,
        description=data.description,
        frequency=data.frequency,
        cue=data.cue,
        reward=data.reward,
        stacked_after=data.stacked_after,
        is_active=True,
    )
    db.add(habit)
    db.commit()
    db.refresh(habit)
    logger.info("Habit %s created for user %s", habit.id, user_id)
    return habit


def list_habits(db: Session, user_id: str, include_inactive: bool = False) -> list[Habit]:
    q = db.query(Habit).filter(Habit.user_id == user_id)
    if not include_inactive:
        q = q.filter(Habit.is_active.is_(True))
    return q.order_by(Habit.id).all()


def update_habit(db: Session, user_id: str, habit_id: int, data: HabitUpdate) -> Habit:
    habit = get_habit(db, user_id, habit_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("stacked_after") is not None:
        _check_stacking(db, user_id, changes["stacked_after"], habit.id)
    if changes.get("name") is not None and not changes["name"].strip():
        raise InvalidInputError("name must not be empty.", field="name")

    for key, value in changes.items():
        if key == "name" and value is not None:
            value = value.strip()
        if value is None and key in ("name", "frequency", "is_active"):
            continue
        setattr(habit, key, value)

    db.commit()
    db.refresh(habit)
    return habit


def delete_habit(db: Session, user_id: str, habit_id: int) -> tuple[bool, bool]:
    """Returns (deleted, deactivated)."""
    habit = get_habit(db, user_id, habit_id)

    active_children = _dependents(db, habit.id)
    if active_children:
        raise HabitHasDependentsError(habit.id, [h.id for h in active_children])

    has_completions = (
        db.query(HabitCompletion.id)
        .filter(HabitCompletion.habit_id == habit.id)
        .first()
        is not None
    )
    if has_completions or _dependents(db, habit.id, active_only=False):
        habit.is_active = False
        db.commit()
        logger.info("Habit %s deactivated (history kept)", habit.id)
        return False, True

    db.delete(habit)
    db.commit()
    logger.info("Habit %s deleted", habit_id)
    return True, False


# ---------------------------------------------------------------------------
# Completions
# ---------------------------------------------------------------------------

def record_completion(
    db: Session,
    user_id: str,
    habit_id: int,
    data: CompletionUpsert,
) -> HabitCompletion:
    """Insert or update the single completion row for (habit, day)."""
    habit = get_habit(db, user_id, habit_id)
    day = data.day or _today()

    def _apply(row: HabitCompletion) -> None:
        row.completed = data.completed
        row.quality = data.quality
        row.notes = data.notes

    row = (
        db.query(HabitCompletion)
        .filter(HabitCompletion.habit_id == habit.id, HabitCompletion.date == day)
        .first()
    )
    if row is None:
        row = HabitCompletion(habit_id=habit.id, user_id=user_id, date=day)
        _apply(row)
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            # Same day submitted concurrently: update the row that won
            db.rollback()
            row = (
                db.query(HabitCompletion)
                .filter(HabitCompletion.habit_id == habit.id, HabitCompletion.date == day)
                .one()
            )
            _apply(row)
            db.commit()
    else:
        _apply(row)
        db.commit()

    db.refresh(row)
    return row


def _points(db: Session, habit_id: int) -> list[CompletionPoint]:
    rows = (
        db.query(HabitCompletion.date, HabitCompletion.completed)
        .filter(HabitCompletion.habit_id == habit_id)
        .order_by(HabitCompletion.date.desc())
        .all()
    )
    return [CompletionPoint(day=d, completed=bool(c)) for d, c in rows]


def list_streaks(
    db: Session,
    user_id: str,
    as_of: Optional[date] = None,
    window_days: Optional[int] = None,
) -> list[HabitStreak]:
    window = window_days or settings.CONSISTENCY_WINDOW_DAYS
    streaks = []
    for habit in list_habits(db, user_id):
        streak = calculate_streak(
            _points(db, habit.id),
            window_days=window,
            as_of=as_of or _today(),
            frequency=_ev(habit.frequency),
        )
        streak.habit_id = habit.id
        streak.habit_name = habit.name
        streaks.append(streak)
    return streaks


# ---------------------------------------------------------------------------
# Consistency summary
# ---------------------------------------------------------------------------

def _insights(overall: float, streaks: list[HabitStreak]) -> list[str]:
    out: list[str] = []
    if overall >= 80:
        out.append("Excellent consistency! You're building strong discipline through your daily habits.")
    elif overall >= 60:
        out.append("Good consistency overall. Focus on the habits that need more attention.")
    elif overall >= 40:
        out.append("Moderate consistency. Consider simplifying your habits or reducing the number of habits.")
    else:
        out.append("Low consistency detected. Focus on 1-2 core habits and build from there.")

    best = max(streaks, key=lambda s: s.consistency_percentage)
    if best.consistency_percentage > 70:
        out.append(
            f'Your most consistent habit is "{best.habit_name}" - '
            "consider stacking new habits after this one."
        )
    struggling = [s for s in streaks if s.consistency_percentage < 50]
    if struggling:
        out.append(f'{len(struggling)} habit(s) need attention. Consider the "never miss twice" rule.')
    return out


def _recommendations(overall: float, streaks: list[HabitStreak]) -> list[str]:
    out: list[str] = []
    if overall < 60:
        out.append("Focus on 1-2 core habits until they become automatic (21+ day streaks)")
        out.append('Use the "never miss twice" rule - if you miss once, prioritize not missing again')
    if any(s.consistency_percentage < 50 for s in streaks):
        out.append("Consider making struggling habits smaller or easier to complete")
        out.append("Link struggling habits to existing strong routines (habit stacking)")
    if len(streaks) > 5:
        out.append("Consider reducing the number of habits you're tracking to focus on quality over quantity")
    if any(s.consistency_percentage > 70 for s in streaks):
        out.append("Use your strong habits as anchors for building new habit stacks")
    return out


def consistency_summary(
    db: Session,
    user_id: str,
    window_days: Optional[int] = None,
    as_of: Optional[date] = None,
) -> ConsistencySummary:
    window = window_days or settings.CONSISTENCY_WINDOW_DAYS
    streaks = list_streaks(db, user_id, as_of=as_of, window_days=window)
    if not streaks:
        return ConsistencySummary(
            window_days=window, overall_consistency=0.0,
            strongest_habit=None, weakest_habit=None,
        )

    overall = round(sum(s.consistency_percentage for s in streaks) / len(streaks), 2)
    ranked = sorted(streaks, key=lambda s: s.consistency_percentage)
    return ConsistencySummary(
        window_days=window,
        overall_consistency=overall,
        strongest_habit=ranked[-1].habit_name,
        weakest_habit=ranked[0].habit_name,
        habits=streaks,
        insights=_insights(overall, streaks),
        recommendations=_recommendations(overall, streaks),
    )


# ---------------------------------------------------------------------------
# Stack suggestions
# ---------------------------------------------------------------------------

# (pattern, habits that commonly follow it); an anchor matches on either word
_STACK_PATTERNS = [
    ("morning routine", ["meditation", "journaling", "exercise", "reading"]),
    ("study session", ["review notes", "practice problems", "summarize learning"]),
    ("evening routine", ["plan tomorrow", "gratitude practice", "prepare clothes"]),
    ("meal time", ["take vitamins", "drink water", "mindful eating"]),
    ("work break", ["stretch", "deep breathing", "walk"]),
]

ANCHOR_MIN_CONSISTENCY = 70.0
MAX_ANCHORS = 3
MAX_SUGGESTIONS = 5


def _pattern_for(name: str) -> Optional[list[str]]:
    lowered = name.lower()
    for pattern, followers in _STACK_PATTERNS:
        if any(word in lowered for word in pattern.split()):
            return followers
    return None


def suggest_stacks(
    db: Session,
    user_id: str,
    as_of: Optional[date] = None,
) -> list[StackSuggestion]:
    """
    Suggest new habits to chain after the user's most consistent ones.

    Anchors are active, unstacked habits at >= 70% over the consistency
    window; the top three by consistency are matched against the pattern
    table. Suggestions the user already tracks are skipped.
    """
    habits = list_habits(db, user_id)
    existing_names = [h.name.lower() for h in habits]
    stacked = {h.id for h in habits if h.stacked_after is not None}

    anchors = [
        s for s in list_streaks(db, user_id, as_of=as_of)
        if s.habit_id not in stacked and s.consistency_percentage >= ANCHOR_MIN_CONSISTENCY
    ]
    anchors.sort(key=lambda s: s.consistency_percentage, reverse=True)

    out: list[StackSuggestion] = []
    seen: set[str] = set()
    for anchor in anchors[:MAX_ANCHORS]:
        for follower in _pattern_for(anchor.habit_name) or []:
            if follower in seen or any(follower in n for n in existing_names):
                continue
            seen.add(follower)
            pct = anchor.consistency_percentage
            out.append(StackSuggestion(
                existing_habit_id=anchor.habit_id,
                existing_habit_name=anchor.habit_name,
                suggested_new_habit=follower,
                reason=f"Stack with your consistent {anchor.habit_name} habit ({pct:.0f}% consistency)",
                confidence_score=round(min(0.9, pct / 100 + 0.2), 2),
            ))

    out.sort(key=lambda s: s.confidence_score, reverse=True)
    logger.debug("%d stack suggestion(s) for user %s", len(out), user_id)
    return out[:MAX_SUGGESTIONS]
