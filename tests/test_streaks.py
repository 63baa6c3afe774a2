"""
Tests for the streak engine (pure functions, no DB).
"""
from __future__ import annotations

import random
from datetime import date, timedelta

import pytest

from app.services.streaks import (
    CompletionPoint,
    calculate_streak,
    consistency_percentage,
    current_streak,
    last_completed,
    longest_streak,
)

_END = date(2026, 3, 31)


def _run(flags: list[bool], end: date = _END) -> list[CompletionPoint]:
    """Consecutive daily records ending at `end`, oldest first."""
    start = end - timedelta(days=len(flags) - 1)
    return [CompletionPoint(start + timedelta(days=i), f) for i, f in enumerate(flags)]


class TestEmptyInput:
    def test_all_zero(self):
        s = calculate_streak([], as_of=_END)
        assert s.current_streak == 0
        assert s.longest_streak == 0
        assert s.last_completed is None
        assert s.consistency_percentage == 0.0


class TestCurrentStreak:
    def test_all_completed(self):
        records = _run([True] * 9)
        s = calculate_streak(records, as_of=_END)
        assert s.current_streak == s.longest_streak == 9

    def test_stops_at_first_miss(self):
        assert current_streak(_run([True, True, False, True, True, True])) == 3

    def test_zero_when_latest_missed(self):
        assert current_streak(_run([True, True, True, False])) == 0

    def test_missing_date_breaks_streak(self):
        records = [
            CompletionPoint(date(2026, 3, 1), True),
            CompletionPoint(date(2026, 3, 2), True),
            # 3rd missing
            CompletionPoint(date(2026, 3, 4), True),
            CompletionPoint(date(2026, 3, 5), True),
        ]
        assert current_streak(records) == 2
        assert longest_streak(records) == 2

    def test_input_order_does_not_matter(self):
        records = _run([False, True, True, True])
        shuffled = list(reversed(records))
        assert current_streak(shuffled) == 3
        assert longest_streak(shuffled) == 3

    def test_weekly_habit_allows_seven_day_gap(self):
        records = [
            CompletionPoint(date(2026, 3, 2), True),
            CompletionPoint(date(2026, 3, 9), True),
            CompletionPoint(date(2026, 3, 16), True),
        ]
        assert current_streak(records, frequency="weekly") == 3
        assert current_streak(records, frequency="daily") == 1


class TestLongestStreak:
    def test_longest_in_history(self):
        records = _run([True, True, True, True, False, True, True])
        assert longest_streak(records) == 4
        assert current_streak(records) == 2

    def test_alternating_sequence(self):
        records = _run([True, False] * 5)
        assert current_streak(records) == 0
        assert longest_streak(records) == 1

        records = _run([False, True] * 5)
        assert current_streak(records) == 1
        assert longest_streak(records) == 1


class TestLastCompleted:
    def test_most_recent_completed_date(self):
        records = _run([True, True, False, False])
        assert last_completed(records) == _END - timedelta(days=2)

    def test_none_when_never_completed(self):
        assert last_completed(_run([False, False])) is None


class TestConsistency:
    def test_half_completed(self):
        records = _run([True, False, True, False])
        assert consistency_percentage(records, 30, _END) == 50.0

    def test_zero_when_window_empty(self):
        old = _run([True, True], end=_END - timedelta(days=90))
        assert consistency_percentage(old, 30, _END) == 0.0

    def test_only_window_counts(self):
        old = _run([False] * 5, end=_END - timedelta(days=60))
        recent = _run([True] * 4)
        assert consistency_percentage(old + recent, 30, _END) == 100.0

    def test_rounded_to_two_decimals(self):
        records = _run([True, False, False])
        assert consistency_percentage(records, 30, _END) == 33.33


class TestInvariants:
    @pytest.mark.parametrize("seed", range(25))
    def test_longest_ge_current_ge_zero(self, seed):
        rng = random.Random(seed)
        records = _run([rng.random() < 0.6 for _ in range(rng.randint(1, 40))])
        # drop some dates to create gaps
        records = [r for r in records if rng.random() > 0.15]
        s = calculate_streak(records, as_of=_END)
        assert s.longest_streak >= s.current_streak >= 0
        assert 0.0 <= s.consistency_percentage <= 100.0
