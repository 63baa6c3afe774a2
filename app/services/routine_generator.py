"""
Routine Segment Generator.

Builds one DailyRoutine per (user, date) from the profile, the performance
snapshot and any pending adaptations.

Pipeline
--------
  profile      → ProfileContext         (NotFoundError / ProfileIncompleteError)
  performance  → PerformanceSnapshot    (None for a first-time user)
  complexity   → classify(), then one step per pending directive
  plan         → three slots: morning / afternoon / evening
  validate     → exactly three, no overlap, durations >= 0
  persist      → routine + segments, pending row marked consumed

Slot layout
-----------
  slot length = floor(available_minutes / 3), 30-minute buffer between slots.
  morning   starts at wake time            deep_work       high
  afternoon starts morning_end + 30        skill_practice  high
  evening   starts afternoon_end + 30      study           medium
  Every slot is clipped to the sleep bound. Sleep at or before wake rolls to
  the next day. Clock strings are written modulo 24h, so a slot may read
  "23:30" → "00:45".

A pending adjust_timing directive swaps the morning and afternoon content.

The tier's task_count / deep_work_blocks / break_frequency /
multitasking_allowed are stored and returned as advisory metadata; the
slot structure is always three segments.

Idempotence: an existing routine is returned unchanged (created=False) with
its stored complexity and adaptations. Two concurrent first requests are
resolved by the (user_id, date) unique constraint: the loser rolls back and
returns the winner's row.

Public API
----------
plan_segments(...)                                   -> list[PlannedSegment]
validate_plan(segments, available_minutes)           -> None
generate_routine(db, user_id, day, available_hours, seed) -> RoutineView
get_routine_by_date(db, user_id, day)                -> RoutineView
update_segment(db, user_id, routine_id, segment_id, data) -> RoutineSegment
"""
from __future__ import annotations

import json
import logging
import random
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import InvalidInputError, NotFoundError, RoutineGenerationError
from app.models.routine import DailyRoutine, RoutineSegment
from app.schemas.routine import SegmentUpdate
from app.services import complexity as complexity_svc
from app.services.adaptation_engine import AdaptationType, RoutineAdaptation, pending_for
from app.services.behavior_log import EventType, record_event
from app.services.complexity import RoutineComplexity
from app.services.performance import PerformanceSnapshot, get_performance_snapshot
from app.services.profile import ProfileContext, load_generation_context

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass
class PlannedSegment:
    position: int
    start_minute: int       # minutes from wake-day midnight, unwrapped
    end_minute: int
    segment_type: str
    activity: str
    priority: str

    @property
    def duration(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def start_time(self) -> str:
        return format_clock(self.start_minute)

    @property
    def end_time(self) -> str:
        return format_clock(self.end_minute)


@dataclass
class ContextFactors:
    day_of_week: str
    season: str


@dataclass
class RoutineView:
    routine: DailyRoutine
    segments: list[RoutineSegment]
    complexity: RoutineComplexity
    adaptations_applied: list[str]
    created: bool
    context: Optional[ContextFactors] = None
    notes: list[str] = field(default_factory=list)

    @property
    def estimated_completion_time(self) -> int:
        return sum(s.duration for s in self.segments)


MINUTES_PER_DAY = 24 * 60
SLOT_BUFFER_MINUTES = 30

# (segment_type, priority) by slot position
_SLOT_PLAN = [
    ("deep_work", "high"),
    ("skill_practice", "high"),
    ("study", "medium"),
]

_ACTIVITY_PREFIX = {
    "deep_work": "Deep work session",
    "study": "Study session",
    "skill_practice": "Skill practice",
}
_ACTIVITY_FALLBACK = {
    "deep_work": "Deep work session: Focus on academic priorities",
    "study": "Study session: Review course materials",
    "skill_practice": "Skill practice: Work on personal development",
}

_SEASONS = {
    3: "spring", 4: "spring", 5: "spring",
    6: "summer", 7: "summer", 8: "summer",
    9: "fall", 10: "fall", 11: "fall",
}

NOTE_REDUCED   = "Reduced complexity based on recent completion challenges"
NOTE_INCREASED = "Increased challenge based on consistent success"
NOTE_BREAKS    = "Added more breaks to improve focus quality"
NOTE_MONDAY    = "Added motivational boost for week start"


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


# ---------------------------------------------------------------------------
# Clock helpers
# ---------------------------------------------------------------------------

def parse_clock(value: str, field_name: str = "time") -> int:
    """'HH:MM' → minutes since midnight."""
    try:
        hours, minutes = value.split(":")
        h, m = int(hours), int(minutes)
    except (AttributeError, ValueError):
        raise InvalidInputError(f'{field_name} must be "HH:MM", got {value!r}.', field=field_name)
    if not (0 <= h < 24 and 0 <= m < 60):
        raise InvalidInputError(f"{field_name} {value!r} is not a valid clock time.", field=field_name)
    return h * 60 + m


def format_clock(minutes: int) -> str:
    minutes %= MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def awake_window(wake_up_time: str, sleep_time: str) -> tuple[int, int]:
    """(wake, sleep) in minutes; sleep at or before wake means after midnight."""
    wake = parse_clock(wake_up_time, "wake_up_time")
    sleep = parse_clock(sleep_time, "sleep_time")
    if sleep <= wake:
        sleep += MINUTES_PER_DAY
    return wake, sleep


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------

def season_for(day: date) -> str:
    return _SEASONS.get(day.month, "winter")


def context_factors(day: date) -> ContextFactors:
    return ContextFactors(day_of_week=day.strftime("%A"), season=season_for(day))


def generation_notes(snapshot: Optional[PerformanceSnapshot], day: date) -> list[str]:
    notes: list[str] = []
    if snapshot is not None:
        if snapshot.completion_rate < 0.5:
            notes.append(NOTE_REDUCED)
        elif snapshot.completion_rate > 0.8:
            notes.append(NOTE_INCREASED)
        if snapshot.average_focus_quality < 0.5:
            notes.append(NOTE_BREAKS)
    if day.weekday() == 0:
        notes.append(NOTE_MONDAY)
    return notes


# ---------------------------------------------------------------------------
# Planning (pure)
# ---------------------------------------------------------------------------

def describe_activity(
    segment_type: str,
    academic_goals: list[str],
    skill_goals: list[str],
    rng: random.Random,
) -> str:
    goals = skill_goals if segment_type == "skill_practice" else academic_goals
    if not goals:
        return _ACTIVITY_FALLBACK[segment_type]
    return f"{_ACTIVITY_PREFIX[segment_type]}: {rng.choice(goals)}"


def plan_segments(
    wake_up_time: str,
    sleep_time: str,
    available_hours: float,
    academic_goals: list[str],
    skill_goals: list[str],
    swap_timing: bool = False,
    rng: Optional[random.Random] = None,
) -> list[PlannedSegment]:
    rng = rng or random.Random()
    wake, sleep = awake_window(wake_up_time, sleep_time)
    slot = int(available_hours * 60) // 3

    content = list(_SLOT_PLAN)
    if swap_timing:
        content[0], content[1] = content[1], content[0]

    segments: list[PlannedSegment] = []
    cursor = wake
    for position, (segment_type, priority) in enumerate(content):
        start = min(cursor, sleep)
        end = min(start + slot, sleep)
        segments.append(PlannedSegment(
            position=position,
            start_minute=start,
            end_minute=end,
            segment_type=segment_type,
            activity=describe_activity(segment_type, academic_goals, skill_goals, rng),
            priority=priority,
        ))
        cursor = start + slot + SLOT_BUFFER_MINUTES
    return segments


def validate_plan(segments: list[PlannedSegment], available_minutes: float) -> None:
    if len(segments) != 3:
        raise RoutineGenerationError(f"Expected 3 segments, got {len(segments)}.")
    ordered = sorted(segments, key=lambda s: s.start_minute)
    for seg in ordered:
        if seg.duration < 0:
            raise RoutineGenerationError(
                f"Segment {seg.position} has negative duration ({seg.duration} min)."
            )
    for prev, nxt in zip(ordered, ordered[1:]):
        if nxt.start_minute < prev.end_minute:
            raise RoutineGenerationError(
                f"Segments {prev.position} and {nxt.position} overlap."
            )
    total = sum(s.duration for s in segments)
    if total > available_minutes:
        raise RoutineGenerationError(
            f"Planned {total} min exceeds the {available_minutes:g} available."
        )


# ---------------------------------------------------------------------------
# Persistence helpers
# ---------------------------------------------------------------------------

def _segments_of(db: Session, routine_id: int) -> list[RoutineSegment]:
    return (
        db.query(RoutineSegment)
        .filter(RoutineSegment.routine_id == routine_id)
        .order_by(RoutineSegment.position)
        .all()
    )


def _view(db: Session, routine: DailyRoutine, created: bool) -> RoutineView:
    stored = json.loads(routine.complexity) if routine.complexity else {"level": routine.complexity_level}
    return RoutineView(
        routine=routine,
        segments=_segments_of(db, routine.id),
        complexity=complexity_svc.from_dict(stored),
        adaptations_applied=json.loads(routine.adaptations or "[]"),
        created=created,
        context=context_factors(routine.date),
    )


def _existing(db: Session, user_id: str, day: date) -> Optional[DailyRoutine]:
    return (
        db.query(DailyRoutine)
        .filter(DailyRoutine.user_id == user_id, DailyRoutine.date == day)
        .first()
    )


# ---------------------------------------------------------------------------
# Public — generate
# ---------------------------------------------------------------------------

def generate_routine(
    db: Session,
    user_id: str,
    day: Optional[date] = None,
    available_hours: Optional[float] = None,
    seed: Optional[int] = None,
) -> RoutineView:
    target = day or _today()

    existing = _existing(db, user_id, target)
    if existing is not None:
        return _view(db, existing, created=False)

    profile: ProfileContext = load_generation_context(db, user_id, available_hours)
    snapshot = get_performance_snapshot(db, user_id, target)
    tier = complexity_svc.classify(snapshot)

    pending_row, pending = pending_for(db, user_id, target)
    tier = complexity_svc.apply_adaptations(tier, pending)
    swap = any(a.type == AdaptationType.ADJUST_TIMING for a in pending)

    planned = plan_segments(
        profile.wake_up_time,
        profile.sleep_time,
        profile.available_hours,
        profile.academic_goals,
        profile.skill_goals,
        swap_timing=swap,
        rng=random.Random(seed),
    )
    validate_plan(planned, profile.available_hours * 60)

    notes = generation_notes(snapshot, target)
    applied = [a.description for a in pending] + notes

    routine = DailyRoutine(
        user_id=user_id,
        date=target,
        completed=False,
        complexity_level=tier.level,
        complexity=json.dumps(tier.to_dict()),
        adaptations=json.dumps(applied),
    )
    db.add(routine)
    try:
        db.flush()
        for seg in planned:
            db.add(RoutineSegment(
                routine_id=routine.id,
                position=seg.position,
                start_time=seg.start_time,
                end_time=seg.end_time,
                segment_type=seg.segment_type,
                activity=seg.activity,
                duration=seg.duration,
                priority=seg.priority,
                completed=False,
            ))
        if pending_row is not None:
            pending_row.consumed_at = datetime.now(tz=timezone.utc)
        db.flush()
        record_event(db, user_id, EventType.ROUTINE_GENERATED, target, {
            "routine_id": routine.id,
            "complexity": tier.level,
            "first_time_user": snapshot is None,
            "pending_applied": len(pending),
        })
        db.commit()
    except IntegrityError:
        # Another request created the routine first
        db.rollback()
        winner = _existing(db, user_id, target)
        if winner is None:
            raise RoutineGenerationError(f"Routine for {target} could not be saved.")
        logger.info("Routine for user %s on %s created concurrently; returning it", user_id, target)
        return _view(db, winner, created=False)

    db.refresh(routine)
    logger.info(
        "Generated %s routine %s for user %s on %s", tier.level, routine.id, user_id, target,
    )
    view = _view(db, routine, created=True)
    view.notes = notes
    return view


# ---------------------------------------------------------------------------
# Public — read / update
# ---------------------------------------------------------------------------

def get_routine_by_date(db: Session, user_id: str, day: date) -> RoutineView:
    routine = _existing(db, user_id, day)
    if routine is None:
        raise NotFoundError("Routine", f"{user_id}/{day}")
    return _view(db, routine, created=False)


def update_segment(
    db: Session,
    user_id: str,
    routine_id: int,
    segment_id: int,
    data: SegmentUpdate,
) -> RoutineSegment:
    """
    Record a segment's completion. The parent routine's completed flag
    follows: true once every segment is complete.
    """
    routine = (
        db.query(DailyRoutine)
        .filter(DailyRoutine.id == routine_id, DailyRoutine.user_id == user_id)
        .first()
    )
    if routine is None:
        raise NotFoundError("Routine", routine_id)
    segment = (
        db.query(RoutineSegment)
        .filter(RoutineSegment.id == segment_id, RoutineSegment.routine_id == routine_id)
        .first()
    )
    if segment is None:
        raise NotFoundError("Segment", segment_id)

    segment.completed = data.completed
    if data.focus_quality is not None:
        segment.focus_quality = data.focus_quality
    if data.actual_duration is not None:
        segment.actual_duration = data.actual_duration
    if data.notes is not None:
        segment.notes = data.notes
    db.flush()

    routine.completed = all(s.completed for s in _segments_of(db, routine.id))

    record_event(db, user_id, EventType.SEGMENT_COMPLETION, routine.date, {
        "routine_id": routine.id,
        "segment_id": segment.id,
        "segment_type": segment.segment_type,
        "completed": segment.completed,
        "focus_quality": data.focus_quality,
        "planned_duration": segment.duration,
        "actual_duration": segment.actual_duration,
    })
    db.commit()
    db.refresh(segment)
    return segment
