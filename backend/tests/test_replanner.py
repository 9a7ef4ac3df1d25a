"""Tests for the replan engine."""

import json

import pytest

from brain import replanner
from brain.errors import AIError
from plans.store import insert_plan
from tasks.store import normalize_task, save_tasks
from users.utils import shift_day
from conftest import today, task_dict


def seed_user(db, **fields):
    values = {"name": "Ana", "email": "ana@example.com", "password_hash": "x", "daily_hours": 3, **fields}
    cols = ", ".join(values)
    cursor = db.execute(f"INSERT INTO users ({cols}) VALUES ({', '.join('?' * len(values))})", list(values.values()))
    db.commit()
    return dict(db.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone())


def seed_plan(db, user, last_replanned=None, **data):
    data = {"mode": "exam", "level": "Calculus", "exam_date": shift_day(today(), 10), **data}
    plan_id = insert_plan(db, user["id"], data, {}, last_replanned)
    db.commit()
    return plan_id


def seed_tasks(db, user, plan_id, *tasks):
    save_tasks(db, user["id"], [normalize_task(t) for t in tasks], plan_id=plan_id)
    db.commit()


def seed_quiz(db, user, subject, score, total, weak=()):
    db.execute(
        "INSERT INTO quiz_results (user_id, subject, topic, score, total, weak_subtopics) VALUES (?, ?, ?, ?, ?, ?)",
        (user["id"], subject, "t", score, total, json.dumps(list(weak)))
    )
    db.commit()


class TestPlanContext:
    def test_unfinished_topics_and_crunch_mode(self):
        plan = {"id": 1, "subject": "Calculus", "mode": "exam", "exam_date": shift_day(today(), 2)}
        tasks = [
            {"subject": "Calculus", "subtopic": "missed", "status": "pending", "day_date": shift_day(today(), -1)},
            {"subject": "calculus", "subtopic": "upcoming", "status": "pending", "day_date": today()},
            {"subject": "Calculus", "subtopic": "done", "status": "completed", "day_date": today()},
            {"subject": "Biology", "subtopic": "other", "status": "pending", "day_date": today()},
        ]
        ctx = replanner.build_plan_context(plan, tasks, [], today())
        assert ctx["unfinished_topics"] == ["missed", "upcoming"]
        assert ctx["total_pending_tasks"] == 2
        assert ctx["is_crunch_mode"] is True
        assert ctx["performance_index"] == "No data yet"

    def test_not_crunch_for_skills_or_distant_exams(self):
        skill = {"id": 1, "subject": "Guitar", "mode": "skill", "exam_date": None}
        exam = {"id": 2, "subject": "Calculus", "mode": "exam", "exam_date": shift_day(today(), 4)}
        assert replanner.build_plan_context(skill, [], [], today())["is_crunch_mode"] is False
        assert replanner.build_plan_context(skill, [], [], today())["exam_date"] == "No deadline"
        assert replanner.build_plan_context(exam, [], [], today())["is_crunch_mode"] is False

    def test_performance_uses_last_five_matching_quizzes(self):
        plan = {"id": 1, "subject": "Calculus", "mode": "exam", "exam_date": shift_day(today(), 20)}
        # newest first: five at 50%, then an old perfect score that falls outside the window
        quizzes = [
            {"subject": "Calculus", "score": 3, "total": 6, "weak_subtopics": json.dumps(["Limits"])}
            for _ in range(5)
        ]
        quizzes.insert(2, {"subject": "Biology", "score": 0, "total": 6, "weak_subtopics": "[]"})
        quizzes.append({"subject": "Calculus", "score": 6, "total": 6, "weak_subtopics": json.dumps(["Series"])})

        ctx = replanner.build_plan_context(plan, [], quizzes, today())
        assert ctx["performance_index"] == "50% accuracy"
        assert ctx["recent_weak_topics"] == ["Limits"]


class TestEnsureOptimalPlan:
    def test_no_plans(self, db):
        user = seed_user(db)
        assert replanner.ensure_optimal_plan(user) == {"redistributed": False}

    def test_only_expired_plans(self, db):
        user = seed_user(db)
        seed_plan(db, user, exam_date=shift_day(today(), -1))
        assert replanner.ensure_optimal_plan(user) == {"redistributed": False}

    def test_already_replanned_today(self, db, fake_llm):
        user = seed_user(db)
        seed_plan(db, user, last_replanned=today())
        assert replanner.ensure_optimal_plan(user) == {"redistributed": False}
        assert fake_llm.calls == []

    def test_replaces_pending_keeps_completed(self, db, fake_llm):
        user = seed_user(db, current_streak=3, last_streak_date=today())
        plan_id = seed_plan(db, user)
        seed_tasks(
            db, user, plan_id,
            {**task_dict(subtopic="Done one", date=shift_day(today(), -2)), "status": "completed"},
            task_dict(subtopic="Missed one", date=shift_day(today(), -1)),
            task_dict(subtopic="Upcoming", date=shift_day(today(), 1)),
        )
        fake_llm.queue([
            task_dict(subtopic="Missed one", date=today(), session_type="Reinforcement Revision"),
            task_dict(subtopic="Upcoming", date=shift_day(today(), 1)),
        ])

        result = replanner.ensure_optimal_plan(user, "tired")
        assert result == {"redistributed": True, "count": 2}

        rows = db.execute("SELECT subtopic, status, day_date, plan_id FROM tasks ORDER BY day_date").fetchall()
        assert [(r["subtopic"], r["status"]) for r in rows] == [
            ("Done one", "completed"), ("Missed one", "pending"), ("Upcoming", "pending"),
        ]
        assert {r["plan_id"] for r in rows} == {plan_id}
        assert db.execute("SELECT last_replanned FROM plans").fetchone()[0] == today()

        prompt = fake_llm.calls[0]["prompt"]
        assert "Current Mood: TIRED" in prompt
        assert "User Streak: 3 days" in prompt
        assert '"total_pending_tasks": 2' in prompt

    def test_other_users_untouched(self, db, fake_llm):
        ana = seed_user(db)
        ben = seed_user(db, name="Ben", email="ben@example.com")
        seed_plan(db, ana)
        ben_plan = seed_plan(db, ben, last_replanned=today())
        seed_tasks(db, ben, ben_plan, task_dict(subtopic="Ben's"))
        fake_llm.queue([task_dict()])

        replanner.ensure_optimal_plan(ana)
        assert db.execute("SELECT COUNT(*) FROM tasks WHERE user_id = ?", (ben["id"],)).fetchone()[0] == 1

    def test_force_replans_even_when_fresh(self, db, fake_llm):
        user = seed_user(db)
        seed_plan(db, user, last_replanned=today())
        fake_llm.queue([task_dict()])
        assert replanner.ensure_optimal_plan(user, force=True)["redistributed"] is True

    def test_empty_output_keeps_schedule(self, db, fake_llm):
        user = seed_user(db)
        plan_id = seed_plan(db, user)
        seed_tasks(db, user, plan_id, task_dict(subtopic="Keep me"))
        fake_llm.queue("[]")

        assert replanner.ensure_optimal_plan(user) == {"redistributed": False, "count": 0}
        assert db.execute("SELECT subtopic FROM tasks").fetchone()[0] == "Keep me"

    @pytest.mark.parametrize("reply", [AIError("boom"), "no json here"])
    def test_failure_still_stamps_today(self, db, fake_llm, reply):
        user = seed_user(db)
        plan_id = seed_plan(db, user, last_replanned=shift_day(today(), -1))
        seed_tasks(db, user, plan_id, task_dict(subtopic="Keep me"))
        fake_llm.queue(reply)

        result = replanner.ensure_optimal_plan(user)
        assert result["redistributed"] is False
        assert result["error"]
        assert db.execute("SELECT last_replanned FROM plans").fetchone()[0] == today()
        assert db.execute("SELECT subtopic FROM tasks").fetchone()[0] == "Keep me"

        # no retry loop on the next request
        assert replanner.ensure_optimal_plan(user) == {"redistributed": False}

    def test_mark_topic_weak_forces_replan(self, db, fake_llm):
        user = seed_user(db)
        seed_plan(db, user, last_replanned=today())
        fake_llm.queue([task_dict()])
        assert replanner.mark_topic_weak(user, "Limits")["redistributed"] is True
