"""Tests for coaching insights and the statistics summary."""

import json

import pytest

from brain.errors import AIError
from users.utils import shift_day
from conftest import today

INSIGHTS = [
    {"id": "1", "title": "Morning focus", "icon": "🌅", "reasoning": "You finish more early.", "change": "Start at 8."},
    {"id": "2", "title": "Limits gap", "icon": "📉", "reasoning": "Two quizzes missed limits.", "change": "Revise limits."},
]


def add_quiz(db, score, total, weak=(), stable=()):
    user_id = db.execute("SELECT id FROM users").fetchone()[0]
    db.execute(
        "INSERT INTO quiz_results (user_id, subject, topic, score, total, weak_subtopics, stable_subtopics) "
        "VALUES (?, 'Calculus', 'Limits', ?, ?, ?, ?)",
        (user_id, score, total, json.dumps(list(weak)), json.dumps(list(stable)))
    )
    db.commit()


@pytest.mark.asyncio
class TestInsights:
    async def test_no_api_key_returns_empty(self, auth_client):
        resp = await auth_client.get("/api/insights")
        assert resp.status_code == 200
        assert resp.json() == {"insights": []}

    async def test_insights_from_model(self, auth_client, fake_llm, db):
        add_quiz(db, 2, 4, weak=["Epsilon-delta"], stable=["One-sided limits"])
        fake_llm.queue(INSIGHTS)

        resp = await auth_client.get("/api/insights")
        assert [i["title"] for i in resp.json()["insights"]] == ["Morning focus", "Limits gap"]

        prompt = fake_llm.calls[0]["prompt"]
        assert "Average Quiz Accuracy: 50.0%" in prompt
        assert '"Epsilon-delta"' in prompt
        assert fake_llm.sources() == ["Insights"]

    async def test_wrapped_insights_are_unwrapped(self, auth_client, fake_llm):
        fake_llm.queue({"insights": INSIGHTS[:1]})
        resp = await auth_client.get("/api/insights")
        assert len(resp.json()["insights"]) == 1

    @pytest.mark.parametrize("reply", [AIError("down"), "not json", {"tips": []}])
    async def test_failures_degrade_to_empty(self, auth_client, fake_llm, reply):
        fake_llm.queue(reply)
        resp = await auth_client.get("/api/insights")
        assert resp.status_code == 200
        assert resp.json() == {"insights": []}


@pytest.mark.asyncio
class TestSummary:
    async def test_empty_summary(self, auth_client):
        data = (await auth_client.get("/api/insights/summary")).json()
        assert data["tasks_total"] == 0
        assert data["completion_rate"] == 0.0
        assert data["quiz_accuracy"] is None
        assert data["mood_counts"] == {}

    async def test_summary_counts(self, auth_client, db):
        tasks = (await auth_client.post("/api/tasks", json=[
            {"subject": "A", "topic": "missed", "date": shift_day(today(), -1)},
            {"subject": "A", "topic": "done", "date": shift_day(today(), -1)},
            {"subject": "A", "topic": "today"},
            {"subject": "A", "topic": "later", "date": shift_day(today(), 3)},
        ])).json()
        await auth_client.patch(f"/api/tasks/{tasks[1]['id']}/progress", json={"status": "completed"})
        add_quiz(db, 3, 4)
        add_quiz(db, 1, 4)
        user_id = db.execute("SELECT id FROM users").fetchone()[0]
        db.executemany(
            "INSERT INTO mood_history (user_id, mood, day_date) VALUES (?, ?, ?)",
            [(user_id, "tired", shift_day(today(), -2)), (user_id, "tired", shift_day(today(), -1)),
             (user_id, "fresh", today())]
        )
        db.execute("UPDATE users SET current_streak = 2, last_streak_date = ?", (today(),))
        db.commit()

        data = (await auth_client.get("/api/insights/summary")).json()
        assert data["tasks_total"] == 4
        assert data["tasks_completed"] == 1
        assert data["tasks_pending"] == 3
        assert data["tasks_missed"] == 1
        assert data["completion_rate"] == 25.0
        assert data["quiz_count"] == 2
        assert data["quiz_accuracy"] == 50.0
        assert data["current_streak"] == 2
        assert data["mood_counts"] == {"tired": 2, "fresh": 1}
