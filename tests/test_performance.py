"""
Tests for the performance aggregator.

Pure build_snapshot() cases first, then get_performance_snapshot() against
the SQLite session with rows seeded per user.
"""
from __future__ import annotations

import json
from datetime import date, timedelta

from app.models.evening_review import EveningReview
from app.models.habit import Habit, HabitCompletion
from app.models.routine import DailyRoutine, RoutineSegment
from app.services.performance import (
    ReviewSignal,
    SegmentSignal,
    average_focus_quality,
    build_snapshot,
    get_performance_snapshot,
    preferred_activity_types,
    routine_completion_rate,
)

_REF = date(2026, 5, 20)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

class TestPureHelpers:
    def test_completion_rate_empty_is_zero(self):
        assert routine_completion_rate([]) == 0.0

    def test_completion_rate(self):
        assert routine_completion_rate([True, False, True, True]) == 0.75

    def test_focus_default_when_untagged(self):
        assert average_focus_quality([SegmentSignal("study", True)]) == 0.5

    def test_focus_scale(self):
        segs = [
            SegmentSignal("study", True, "high"),
            SegmentSignal("study", True, "low"),
        ]
        assert average_focus_quality(segs) == 0.6

    def test_preferred_types_above_threshold(self):
        segs = (
            [SegmentSignal("deep_work", True)] * 4
            + [SegmentSignal("deep_work", False)]
            + [SegmentSignal("study", True), SegmentSignal("study", False)]
        )
        # deep_work 0.8 > 0.7, study 0.5
        assert preferred_activity_types(segs) == ["deep_work"]


class TestBuildSnapshot:
    def test_no_data_is_first_time_user(self):
        assert build_snapshot([], [], [], []) is None

    def test_routines_drive_completion(self):
        snap = build_snapshot([True, True, False, True], [], [], [])
        assert snap.completion_rate == 0.75
        assert snap.recent_successes == 3
        assert snap.recent_failures == 1
        assert snap.consistency_score == 0.7

    def test_reviews_used_when_no_routines(self):
        snap = build_snapshot([], [], [], [ReviewSignal(3, 1, 6, 6)])
        assert snap.completion_rate == 0.75
        assert snap.average_energy == 6

    def test_habit_consistency_mean(self):
        snap = build_snapshot([], [], [80.0, 60.0], [])
        assert snap.consistency_score == 0.7
        assert snap.recent_failures == 2
        assert snap.recent_successes == 5

    def test_unreadable_sources_use_defaults(self):
        snap = build_snapshot(None, None, None, None)
        assert snap is not None
        assert snap.completion_rate == 0.7
        assert snap.consistency_score == 0.7
        assert snap.recent_failures == 2
        assert snap.recent_successes == 5
        assert snap.average_focus_quality == 0.6
        assert set(snap.degraded_sources) == {"routines", "segments", "habits", "reviews"}


# ---------------------------------------------------------------------------
# DB-backed aggregation
# ---------------------------------------------------------------------------

def _routine(db, user_id: str, day: date, completed: bool, segs: list[tuple[str, bool, str | None]]):
    r = DailyRoutine(
        user_id=user_id, date=day, completed=completed,
        complexity_level="moderate", complexity=None, adaptations="[]",
    )
    db.add(r)
    db.flush()
    for pos, (kind, done, focus) in enumerate(segs):
        db.add(RoutineSegment(
            routine_id=r.id, position=pos, start_time="08:00", end_time="09:00",
            segment_type=kind, activity=kind, duration=60, priority="high",
            completed=done, focus_quality=focus,
        ))
    return r


class TestGetPerformanceSnapshot:
    def test_first_time_user_returns_none(self, db, user_id):
        assert get_performance_snapshot(db, user_id, _REF) is None

    def test_window_excludes_reference_day_and_old_rows(self, db, user_id):
        _routine(db, user_id, _REF, False, [])                        # excluded: same day
        _routine(db, user_id, _REF - timedelta(days=30), False, [])   # excluded: too old
        _routine(db, user_id, _REF - timedelta(days=1), True, [("deep_work", True, "high")])
        _routine(db, user_id, _REF - timedelta(days=2), True, [("deep_work", True, "medium")])
        db.commit()

        snap = get_performance_snapshot(db, user_id, _REF)
        assert snap.completion_rate == 1.0
        assert snap.recent_successes == 2
        assert snap.recent_failures == 0
        assert snap.average_focus_quality == 0.8
        assert snap.preferred_activity_types == ["deep_work"]
        assert snap.degraded_sources == []

    def test_combines_habits_and_reviews(self, db, user_id):
        habit = Habit(user_id=user_id, name="Read", frequency="daily", is_active=True)
        db.add(habit)
        db.flush()
        for i in range(4):
            db.add(HabitCompletion(
                habit_id=habit.id, user_id=user_id,
                date=_REF - timedelta(days=i + 1), completed=i % 2 == 0,
            ))
        db.add(EveningReview(
            user_id=user_id, date=_REF - timedelta(days=1),
            accomplished=json.dumps(["a"]), missed=json.dumps(["b", "c", "d"]),
            reasons="[]", tomorrow_tasks="[]", mood=5, energy_level=4, insights="",
        ))
        db.commit()

        snap = get_performance_snapshot(db, user_id, _REF)
        assert snap.consistency_score == 0.5
        assert snap.completion_rate == 0.25
        assert snap.recent_failures == 3
        assert snap.recent_successes == 1
        assert snap.average_focus_quality == 0.5
