"""
Integration tests for API endpoints using a SQLite test DB.
"""
from datetime import date, timedelta


class TestHealth:
    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"
        assert r.json()["db"] == "ok"


class TestProfile:
    def test_put_then_get(self, client, user_id, profile_payload):
        r = client.put(f"/users/{user_id}/profile", json=profile_payload)
        assert r.status_code == 200
        body = r.json()
        assert body["is_complete"] is True
        assert body["missing_fields"] == []
        assert body["academic_goals"] == ["Linear algebra", "Thesis chapter 2"]

        r = client.get(f"/users/{user_id}/profile")
        assert r.status_code == 200
        assert r.json()["wake_up_time"] == "07:00"

    def test_put_replaces_every_field(self, client, user_id, profile_payload):
        client.put(f"/users/{user_id}/profile", json=profile_payload)
        r = client.put(f"/users/{user_id}/profile", json={"skill_goals": ["Chess"]})
        body = r.json()
        assert body["academic_goals"] == []
        assert body["skill_goals"] == ["Chess"]
        assert body["missing_fields"] == ["schedule", "available_hours"]

    def test_incomplete_profile_reports_missing(self, client, user_id):
        r = client.put(f"/users/{user_id}/profile", json={"wake_up_time": "06:00"})
        body = r.json()
        assert body["is_complete"] is False
        assert body["missing_fields"] == ["goals", "schedule", "available_hours"]

    def test_sleep_before_wake_accepted(self, client, user_id, profile_payload):
        payload = {**profile_payload, "wake_up_time": "14:00", "sleep_time": "03:00"}
        r = client.put(f"/users/{user_id}/profile", json=payload)
        assert r.status_code == 200
        assert r.json()["sleep_time"] == "03:00"

    def test_unknown_profile_is_404(self, client, user_id):
        r = client.get(f"/users/{user_id}/profile")
        assert r.status_code == 404
        assert r.json()["code"] == "NOT_FOUND"

    def test_bad_clock_rejected(self, client, user_id):
        r = client.put(f"/users/{user_id}/profile", json={"wake_up_time": "25:00"})
        assert r.status_code == 422

    def test_available_hours_bounds(self, client, user_id):
        assert client.put(f"/users/{user_id}/profile", json={"available_hours": 0}).status_code == 422
        assert client.put(f"/users/{user_id}/profile", json={"available_hours": 25}).status_code == 422


class TestPerformance:
    def test_first_time_user_defaults(self, client, user_id):
        r = client.get(f"/users/{user_id}/performance")
        assert r.status_code == 200
        body = r.json()
        assert body["first_time_user"] is True
        assert body["completion_rate"] == 0.7
        assert body["consistency_score"] == 0.7
        assert body["recent_failures"] == 2
        assert body["recent_successes"] == 5
        assert body["complexity"]["level"] == "moderate"

    def test_snapshot_from_reviews(self, client, user_id):
        day = date(2026, 6, 1)
        client.post(f"/users/{user_id}/evening-reviews", json={
            "day": day.isoformat(),
            "accomplished": ["a"],
            "missed": ["b", "c", "d"],
            "tomorrow_tasks": [],
            "mood": 5,
            "energy_level": 5,
        })
        r = client.get(
            f"/users/{user_id}/performance",
            params={"reference_date": (day + timedelta(days=1)).isoformat()},
        )
        body = r.json()
        assert body["first_time_user"] is False
        assert body["completion_rate"] == 0.25
        assert body["complexity"]["level"] == "simple"

    def test_reference_day_itself_excluded(self, client, user_id):
        day = date(2026, 6, 1)
        client.post(f"/users/{user_id}/evening-reviews", json={
            "day": day.isoformat(),
            "accomplished": [],
            "missed": ["x"],
            "tomorrow_tasks": [],
            "mood": 5,
            "energy_level": 5,
        })
        r = client.get(f"/users/{user_id}/performance", params={"reference_date": day.isoformat()})
        assert r.json()["first_time_user"] is True


class TestBehaviorEvents:
    def test_empty_log(self, client, user_id):
        r = client.get(f"/users/{user_id}/behavior/events")
        assert r.status_code == 200
        assert r.json() == {"total": 0, "items": []}

    def test_generation_and_review_are_logged(self, client, user_id, profile_payload):
        client.put(f"/users/{user_id}/profile", json=profile_payload)
        day = date(2026, 6, 10)
        client.post(f"/users/{user_id}/routines", json={"day": day.isoformat()})
        client.post(f"/users/{user_id}/evening-reviews", json={
            "day": (day - timedelta(days=1)).isoformat(),
            "accomplished": [],
            "missed": [],
            "tomorrow_tasks": [],
            "mood": 2,
            "energy_level": 6,
        })

        body = client.get(f"/users/{user_id}/behavior/events").json()
        assert body["total"] == 2
        types = {e["event_type"] for e in body["items"]}
        assert types == {"routine_generated", "routine_adaptations_applied"}

        applied = client.get(
            f"/users/{user_id}/behavior/events",
            params={"event_type": "routine_adaptations_applied"},
        ).json()
        [event] = applied["items"]
        assert event["reference_date"] == day.isoformat()
        assert event["metadata"]["source_date"] == (day - timedelta(days=1)).isoformat()

    def test_pagination(self, client, user_id, profile_payload):
        client.put(f"/users/{user_id}/profile", json=profile_payload)
        start = date(2026, 6, 20)
        for i in range(3):
            client.post(f"/users/{user_id}/routines", json={"day": (start + timedelta(days=i)).isoformat()})

        page = client.get(f"/users/{user_id}/behavior/events", params={"limit": 2}).json()
        assert page["total"] == 3
        assert len(page["items"]) == 2
        rest = client.get(f"/users/{user_id}/behavior/events", params={"limit": 2, "offset": 2}).json()
        assert len(rest["items"]) == 1

    def test_limit_bounds(self, client, user_id):
        r = client.get(f"/users/{user_id}/behavior/events", params={"limit": 0})
        assert r.status_code == 422

    def test_unknown_event_type_rejected(self, client, user_id):
        r = client.get(f"/users/{user_id}/behavior/events", params={"event_type": "habit_created"})
        assert r.status_code == 422
        body = r.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"]["field"] == "event_type"
