"""
Tests for evening reviews: validation, duplicate handling, adaptation
dispatch (pending vs existing routine), best-effort enrichment, history.
"""
from __future__ import annotations

from datetime import date, timedelta

from app.models.pending_adaptation import PendingAdaptation
from app.services import adaptation_engine
from app.services import evening_review as review_svc
from app.services.evening_review import analyze_reviews

_DAY = date(2026, 5, 11)
_NEXT = _DAY + timedelta(days=1)


def _payload(**overrides) -> dict:
    body = {
        "day": _DAY.isoformat(),
        "accomplished": ["Read chapter 3", "Gym"],
        "missed": [],
        "reasons": [],
        "tomorrow_tasks": ["Finish proofs"],
        "mood": 7,
        "energy_level": 6,
        "insights": "",
    }
    body.update(overrides)
    return body


def _post(client, user_id: str, **overrides):
    return client.post(f"/users/{user_id}/evening-reviews", json=_payload(**overrides))


# ---------------------------------------------------------------------------
# Validation / conflicts
# ---------------------------------------------------------------------------

class TestReviewValidation:
    def test_create_returns_review_and_target_date(self, client, user_id):
        resp = _post(client, user_id, accomplished=["  Gym  ", ""])
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["review"]["accomplished"] == ["Gym"]
        assert body["review"]["date"] == _DAY.isoformat()
        assert body["target_date"] == _NEXT.isoformat()

    def test_mood_out_of_range(self, client, user_id):
        for mood in (0, 11):
            resp = _post(client, user_id, mood=mood)
            assert resp.status_code == 422
            assert resp.json()["code"] == "VALIDATION_ERROR"

    def test_energy_out_of_range(self, client, user_id):
        assert _post(client, user_id, energy_level=12).status_code == 422

    def test_required_lists(self, client, user_id):
        body = _payload()
        del body["tomorrow_tasks"]
        resp = client.post(f"/users/{user_id}/evening-reviews", json=body)
        assert resp.status_code == 422
        fields = [e["field"] for e in resp.json()["details"]["errors"]]
        assert "tomorrow_tasks" in fields

    def test_duplicate_day_conflicts_and_keeps_first(self, client, user_id):
        assert _post(client, user_id, mood=8).status_code == 201
        resp = _post(client, user_id, mood=2)
        assert resp.status_code == 409
        assert resp.json()["code"] == "REVIEW_ALREADY_EXISTS"

        history = client.get(
            f"/users/{user_id}/evening-reviews", params={"as_of": _DAY.isoformat()},
        ).json()
        assert [r["mood"] for r in history["items"]] == [8]


# ---------------------------------------------------------------------------
# Adaptation dispatch
# ---------------------------------------------------------------------------

class TestReviewAdaptations:
    def test_neutral_review_dispatches_nothing(self, client, user_id):
        body = _post(client, user_id).json()
        assert body["adaptations"] == []
        assert body["dispatched_to"] is None

    def test_low_energy_without_routine_is_pending(self, client, db, user_id):
        body = _post(client, user_id, energy_level=2).json()
        assert body["dispatched_to"] == "pending"
        assert ("simplify", 0.8) in [(a["type"], a["impact_score"]) for a in body["adaptations"]]

        row = db.query(PendingAdaptation).filter(PendingAdaptation.user_id == user_id).one()
        assert row.target_date == _NEXT
        assert row.consumed_at is None

    def test_pending_consumed_by_next_generation(self, client, db, user_id, profile_payload):
        client.put(f"/users/{user_id}/profile", json=profile_payload)
        _post(client, user_id, energy_level=2, accomplished=["a"], missed=["b"])

        resp = client.post(f"/users/{user_id}/routines", json={"day": _NEXT.isoformat()})
        assert resp.status_code == 201
        routine = resp.json()
        assert routine["complexity"]["level"] == "simple"
        assert "Reduce routine complexity due to low energy levels" in routine["adaptations_applied"]

        db.expire_all()
        row = db.query(PendingAdaptation).filter(PendingAdaptation.user_id == user_id).one()
        assert row.consumed_at is not None

    def test_existing_routine_adjusted_immediately(self, client, user_id, profile_payload):
        client.put(f"/users/{user_id}/profile", json=profile_payload)
        before = client.post(f"/users/{user_id}/routines", json={"day": _NEXT.isoformat()}).json()
        assert before["segments"][0]["segment_type"] == "deep_work"

        body = _post(client, user_id, mood=2).json()
        assert body["dispatched_to"] == "routine"

        after = client.get(f"/users/{user_id}/routines/{_NEXT.isoformat()}").json()
        assert after["segments"][0]["segment_type"] == "skill_practice"
        assert after["segments"][0]["start_time"] == before["segments"][0]["start_time"]
        assert "Shift challenging tasks away from low-mood periods" in after["adaptations_applied"]

    def test_adaptation_failure_keeps_review(self, client, user_id, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("rules unavailable")

        monkeypatch.setattr(adaptation_engine, "derive_adaptations", boom)
        resp = _post(client, user_id, energy_level=1)
        assert resp.status_code == 201
        body = resp.json()
        assert body["adaptations"] == []
        assert body["dispatched_to"] is None
        assert body["review"]["energy_level"] == 1

    def test_insight_failure_keeps_review(self, client, user_id, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("stats unavailable")

        monkeypatch.setattr(review_svc, "_productivity_insight", boom)
        resp = _post(client, user_id, energy_level=2)
        assert resp.status_code == 201
        body = resp.json()
        assert body["insights"] == []
        assert body["dispatched_to"] == "pending"


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

class TestReviewInsights:
    def test_insight_categories(self, client, user_id):
        body = _post(client, user_id, missed=["Laundry"], reasons=["forgot"]).json()
        categories = [i["category"] for i in body["insights"]]
        assert categories == ["productivity", "energy", "mood", "focus"]
        focus = body["insights"][-1]
        assert focus["insight"] == "You missed 1 tasks today"

    def test_single_review_trends_are_stable(self, client, user_id):
        body = _post(client, user_id).json()
        assert {i["trend"] for i in body["insights"]} == {"stable"}


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestReviewUpdate:
    def test_changed_inputs_rerun_adaptations(self, client, user_id):
        review = _post(client, user_id).json()["review"]
        resp = client.patch(
            f"/users/{user_id}/evening-reviews/{review['id']}", json={"energy_level": 2},
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["review"]["energy_level"] == 2
        assert body["dispatched_to"] == "pending"

    def test_unrelated_change_does_not_dispatch(self, client, user_id):
        review = _post(client, user_id).json()["review"]
        body = client.patch(
            f"/users/{user_id}/evening-reviews/{review['id']}",
            json={"tomorrow_tasks": ["Plan week"]},
        ).json()
        assert body["review"]["tomorrow_tasks"] == ["Plan week"]
        assert body["adaptations"] == []
        assert body["dispatched_to"] is None

    def test_invalid_score_on_update(self, client, user_id):
        review = _post(client, user_id).json()["review"]
        resp = client.patch(f"/users/{user_id}/evening-reviews/{review['id']}", json={"mood": 0})
        assert resp.status_code == 422

    def test_other_users_review_is_404(self, client, user_id):
        review = _post(client, user_id).json()["review"]
        resp = client.patch(f"/users/{user_id}-x/evening-reviews/{review['id']}", json={"mood": 5})
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class TestReviewHistory:
    def test_history_newest_first_with_analysis(self, client, user_id):
        _post(client, user_id, day=(_DAY - timedelta(days=2)).isoformat(),
              accomplished=["a"], missed=["b"], reasons=["busy"], mood=8, energy_level=8)
        _post(client, user_id, day=(_DAY - timedelta(days=1)).isoformat(),
              accomplished=["a", "b"], missed=["c"], reasons=["busy", "tired"], mood=8, energy_level=8)
        _post(client, user_id, accomplished=["a", "b", "c"], mood=8, energy_level=8)

        resp = client.get(f"/users/{user_id}/evening-reviews", params={"as_of": _DAY.isoformat()})
        assert resp.status_code == 200
        body = resp.json()
        assert [r["date"] for r in body["items"]] == [
            _DAY.isoformat(),
            (_DAY - timedelta(days=1)).isoformat(),
            (_DAY - timedelta(days=2)).isoformat(),
        ]
        analysis = body["analysis"]
        assert analysis["total_reviews"] == 3
        assert analysis["completion_rate"] == 0.75
        assert analysis["common_obstacles"][0] == "busy"
        assert analysis["mood_trend"] == "stable"
        assert "Your high mood and energy levels support good productivity" in analysis["productivity_insights"]

    def test_window_excludes_older_reviews(self, client, user_id):
        _post(client, user_id, day=(_DAY - timedelta(days=40)).isoformat())
        body = client.get(
            f"/users/{user_id}/evening-reviews", params={"as_of": _DAY.isoformat(), "days": 30},
        ).json()
        assert body["items"] == []
        assert body["analysis"]["total_reviews"] == 0


class TestAnalyzeReviews:
    def test_empty(self):
        analysis = analyze_reviews([])
        assert analysis.total_reviews == 0
        assert analysis.mood_trend == "stable"
        assert analysis.productivity_insights == []
