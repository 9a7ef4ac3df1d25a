"""Tests for profile, streak decay and the daily mood check-in."""

import pytest

from users.utils import advance_streak, effective_streak, shift_day
from conftest import signup, today, task_dict


class TestStreakRules:
    def test_streak_kept_if_last_day_was_yesterday(self):
        t = "2026-03-10"
        assert effective_streak({"current_streak": 4, "last_streak_date": "2026-03-09"}, t) == 4
        assert effective_streak({"current_streak": 4, "last_streak_date": t}, t) == 4

    def test_streak_broken_after_a_gap(self):
        assert effective_streak({"current_streak": 4, "last_streak_date": "2026-03-07"}, "2026-03-10") == 0

    def test_advance_from_yesterday(self):
        user = {"current_streak": 2, "last_streak_date": "2026-03-09", "streak_history": '["2026-03-09"]'}
        assert advance_streak(user, "2026-03-10") == (3, ["2026-03-09", "2026-03-10"])

    def test_advance_after_gap_restarts(self):
        user = {"current_streak": 9, "last_streak_date": "2026-03-01", "streak_history": "[]"}
        assert advance_streak(user, "2026-03-10") == (1, ["2026-03-10"])

    def test_advance_twice_same_day(self):
        assert advance_streak({"current_streak": 1, "last_streak_date": "2026-03-10"}, "2026-03-10") is None


@pytest.mark.asyncio
class TestProfile:
    async def test_profile_needs_mood_check(self, auth_client):
        resp = await auth_client.get("/api/user/profile")
        assert resp.status_code == 200
        data = resp.json()
        assert data["needs_mood_check"] is True
        assert data["current_streak"] == 0
        assert "password_hash" not in data
        assert "auth_token" not in data

    async def test_stale_streak_is_reset_and_persisted(self, auth_client, db):
        db.execute(
            "UPDATE users SET current_streak = 5, last_streak_date = ?", (shift_day(today(), -3),)
        )
        db.commit()

        resp = await auth_client.get("/api/user/profile")
        assert resp.json()["current_streak"] == 0
        row = db.execute("SELECT current_streak FROM users").fetchone()
        assert row["current_streak"] == 0

    async def test_recent_streak_survives(self, auth_client, db):
        db.execute(
            "UPDATE users SET current_streak = 5, last_streak_date = ?", (shift_day(today(), -1),)
        )
        db.commit()
        resp = await auth_client.get("/api/user/profile")
        assert resp.json()["current_streak"] == 5

    async def test_update_profile(self, auth_client):
        resp = await auth_client.patch("/api/user/profile", json={"daily_hours": 6, "timezone_offset": -120})
        assert resp.status_code == 200
        assert resp.json()["daily_hours"] == 6
        assert resp.json()["timezone_offset"] == -120

    async def test_update_profile_requires_fields(self, auth_client):
        resp = await auth_client.patch("/api/user/profile", json={})
        assert resp.status_code == 400


@pytest.mark.asyncio
class TestMood:
    async def test_log_mood(self, auth_client):
        resp = await auth_client.post("/api/user/mood", json={"mood": "Tired"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["mood"] == "tired"
        assert data["date"] == today()
        # no plans yet, nothing to replan
        assert data["replan"] == {"redistributed": False}

        profile = (await auth_client.get("/api/user/profile")).json()
        assert profile["current_mood"] == "tired"
        assert profile["needs_mood_check"] is False

    async def test_mood_once_per_day(self, auth_client):
        await auth_client.post("/api/user/mood", json={"mood": "calm"})
        resp = await auth_client.post("/api/user/mood", json={"mood": "fresh"})
        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [{}, {"mood": ""}, {"mood": "ecstatic"}])
    async def test_invalid_mood(self, auth_client, body):
        resp = await auth_client.post("/api/user/mood", json=body)
        assert resp.status_code == 400

    async def test_mood_forces_replan(self, auth_client, fake_llm):
        await auth_client.post("/api/onboarding", json={
            "mode": "skill", "skill": "Guitar", "skillDuration": "3 months",
        })
        fake_llm.queue([task_dict(subject="Guitar", subtopic="Easy chords", session_type="Practice")])

        resp = await auth_client.post("/api/user/mood", json={"mood": "stressed"})
        assert resp.json()["replan"] == {"redistributed": True, "count": 1}
        assert "STRESSED" in fake_llm.calls[0]["prompt"]
        assert "Comfort Revision" in fake_llm.calls[0]["prompt"]

    async def test_mood_history(self, client, db):
        await signup(client)
        db.execute(
            "INSERT INTO mood_history (user_id, mood, day_date) VALUES (1, 'okay', ?)",
            (shift_day(today(), -1),)
        )
        db.commit()
        await client.post("/api/user/mood", json={"mood": "fresh"})

        resp = await client.get("/api/user/mood-history")
        assert [m["mood"] for m in resp.json()] == ["fresh", "okay"]
