"""
Tests for error handling: structured error responses, HTTP status codes,
and the custom exception classes.
"""
import pytest
from app.core.errors import (
    DegradedComputationError,
    HabitHasDependentsError,
    InvalidInputError,
    NotFoundError,
    ProfileIncompleteError,
    ReviewAlreadyExistsError,
    RoutineGenerationError,
)
from datetime import date


# ---------------------------------------------------------------------------
# Unit tests on exception classes
# ---------------------------------------------------------------------------

class TestExceptionClasses:
    def test_review_already_exists_error(self):
        err = ReviewAlreadyExistsError(day=date(2026, 2, 20))
        assert err.http_status == 409
        assert err.code == "REVIEW_ALREADY_EXISTS"
        assert "2026-02-20" in err.message
        d = err.to_dict()
        assert d["details"]["day"] == "2026-02-20"

    def test_habit_has_dependents_error(self):
        err = HabitHasDependentsError(habit_id=3, dependent_ids=[7, 9])
        assert err.http_status == 409
        assert err.code == "HABIT_HAS_DEPENDENTS"
        assert err.to_dict()["details"] == {"habit_id": 3, "dependent_ids": [7, 9]}

    def test_profile_incomplete_error(self):
        err = ProfileIncompleteError(["goals", "schedule"])
        assert err.http_status == 422
        assert err.code == "PROFILE_INCOMPLETE"
        assert "goals" in err.message
        assert err.details["missing"] == ["goals", "schedule"]

    def test_not_found_error(self):
        err = NotFoundError("Habit", 42)
        assert err.http_status == 404
        assert err.details == {"resource": "Habit", "id": "42"}

    def test_invalid_input_error_with_field(self):
        err = InvalidInputError("bad clock", field="wake_up_time")
        assert err.http_status == 422
        assert err.code == "VALIDATION_ERROR"
        assert err.details["field"] == "wake_up_time"

    def test_routine_generation_error(self):
        err = RoutineGenerationError("Segments 0 and 1 overlap.")
        assert err.http_status == 500
        assert err.code == "ROUTINE_GENERATION_ERROR"

    def test_degraded_computation_carries_cause(self):
        err = DegradedComputationError("adaptations", ValueError("boom"))
        assert err.details["step"] == "adaptations"
        assert "boom" in err.details["cause"]

    def test_to_dict_without_details(self):
        err = RoutineGenerationError("oops")
        d = err.to_dict()
        assert "code" in d
        assert "message" in d
        # details should not be in dict when empty
        assert "details" not in d


# ---------------------------------------------------------------------------
# Integration tests on HTTP error responses
# ---------------------------------------------------------------------------

class TestValidationErrors:
    def test_missing_required_field(self, client, user_id):
        r = client.post(f"/users/{user_id}/habits", json={})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert "errors" in body["details"]
        fields = [e["field"] for e in body["details"]["errors"]]
        assert "name" in fields

    def test_invalid_enum_value(self, client, user_id):
        r = client.post(f"/users/{user_id}/habits", json={"name": "x", "frequency": "hourly"})
        assert r.status_code == 422
        fields = [e["field"] for e in r.json()["details"]["errors"]]
        assert any("frequency" in f for f in fields)

    def test_invalid_day_format(self, client, user_id):
        r = client.post(f"/users/{user_id}/routines", json={"day": "not-a-date"})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.parametrize("clock", ["7:00", "24:00", "07:60", "noon", ""])
    def test_bad_clock_strings(self, client, user_id, clock):
        r = client.put(f"/users/{user_id}/profile", json={"sleep_time": clock})
        assert r.status_code == 422
        assert r.json()["code"] == "VALIDATION_ERROR"


class TestConflictErrors:
    _DAY = "2024-07-04"

    def test_duplicate_review_returns_409_with_code(self, client, user_id):
        payload = {
            "day": self._DAY,
            "accomplished": [],
            "missed": [],
            "tomorrow_tasks": [],
            "mood": 6,
            "energy_level": 6,
        }
        r1 = client.post(f"/users/{user_id}/evening-reviews", json=payload)
        assert r1.status_code == 201

        r2 = client.post(f"/users/{user_id}/evening-reviews", json=payload)
        assert r2.status_code == 409
        body = r2.json()
        assert body["code"] == "REVIEW_ALREADY_EXISTS"
        assert body["details"]["day"] == self._DAY


class TestNotFoundErrors:
    def test_routine_for_unknown_day(self, client, user_id):
        r = client.get(f"/users/{user_id}/routines/2026-01-01")
        assert r.status_code == 404
        assert r.json()["code"] == "NOT_FOUND"

    def test_segment_of_other_users_routine(self, client, user_id, profile_payload):
        client.put(f"/users/{user_id}/profile", json=profile_payload)
        routine = client.post(f"/users/{user_id}/routines", json={"day": "2026-01-02"}).json()
        seg_id = routine["segments"][0]["id"]
        r = client.patch(
            f"/users/{user_id}-other/routines/{routine['id']}/segments/{seg_id}",
            json={"completed": True},
        )
        assert r.status_code == 404
