"""
Habit Consistency & Streak Engine.

Pure functions over one habit's completion history. No DB access, no
writes; the habit service loads the rows and hands them in.

Definitions
-----------
  current_streak  — consecutive completed records ending at the most recent
                    record. 0 when the most recent record is not completed.
  longest_streak  — longest such run anywhere in history.
  last_completed  — most recent date with completed = true, or None.
  consistency     — 100 × completed / total over records in the trailing
                    window [as_of - window_days, as_of]; 0.0 when empty.

A missing period between two records is a break, not skipped: for a daily
habit two records more than 1 day apart do not chain, for a weekly habit
more than 7 days apart.

Invariant: longest_streak >= current_streak >= 0.

Public API
----------
calculate_streak(records, window_days, as_of, frequency) -> HabitStreak
current_streak(records, frequency)                      -> int
longest_streak(records, frequency)                      -> int
last_completed(records)                                 -> date | None
consistency_percentage(records, window_days, as_of)     -> float
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CompletionPoint:
    day: date
    completed: bool


@dataclass
class HabitStreak:
    current_streak: int
    longest_streak: int
    last_completed: Optional[date]
    consistency_percentage: float   # 0.0 – 100.0
    habit_id: Optional[int] = None
    habit_name: Optional[str] = None


_PERIOD_DAYS = {"daily": 1, "weekly": 7}
DEFAULT_WINDOW_DAYS = 30


def _today() -> date:
    return datetime.now(tz=timezone.utc).date()


def _period(frequency: str) -> int:
    return _PERIOD_DAYS.get(frequency, 1)


def _ascending(records: Iterable[CompletionPoint]) -> list[CompletionPoint]:
    return sorted(records, key=lambda r: r.day)


# ---------------------------------------------------------------------------
# Individual metrics
# ---------------------------------------------------------------------------

def current_streak(records: Iterable[CompletionPoint], frequency: str = "daily") -> int:
    desc = list(reversed(_ascending(records)))
    period = _period(frequency)

    streak = 0
    previous: Optional[date] = None
    for rec in desc:
        if not rec.completed:
            break
        if previous is not None and (previous - rec.day).days > period:
            break
        streak += 1
        previous = rec.day
    return streak


def longest_streak(records: Iterable[CompletionPoint], frequency: str = "daily") -> int:
    period = _period(frequency)

    best = 0
    run = 0
    previous: Optional[date] = None
    for rec in _ascending(records):
        if not rec.completed:
            run = 0
            previous = None
            continue
        if previous is not None and (rec.day - previous).days > period:
            run = 0
        run += 1
        previous = rec.day
        best = max(best, run)
    return best


def last_completed(records: Iterable[CompletionPoint]) -> Optional[date]:
    done = [r.day for r in records if r.completed]
    return max(done) if done else None


def consistency_percentage(
    records: Iterable[CompletionPoint],
    window_days: int = DEFAULT_WINDOW_DAYS,
    as_of: Optional[date] = None,
) -> float:
    end = as_of or _today()
    start = end - timedelta(days=window_days)
    in_window = [r for r in records if start <= r.day <= end]
    if not in_window:
        return 0.0
    completed = sum(1 for r in in_window if r.completed)
    return round(100.0 * completed / len(in_window), 2)


# ---------------------------------------------------------------------------
# Public — all metrics at once
# ---------------------------------------------------------------------------

def calculate_streak(
    records: Iterable[CompletionPoint],
    window_days: int = DEFAULT_WINDOW_DAYS,
    as_of: Optional[date] = None,
    frequency: str = "daily",
) -> HabitStreak:
    """
    Compute a HabitStreak from completion records in any order.
    Empty input yields zeros and a null last_completed.
    """
    points = _ascending(records)
    return HabitStreak(
        current_streak=current_streak(points, frequency),
        longest_streak=longest_streak(points, frequency),
        last_completed=last_completed(points),
        consistency_percentage=consistency_percentage(points, window_days, as_of),
    )
