"""Replan engine.

Rebuilds the pending part of a student's schedule across all active goals,
taking mood, quiz performance and missed sessions into account. Runs at most
once per day per user unless forced (mood check-in, weak quiz, manual replan).
"""
from __future__ import annotations

import json
import logging

from brain import llm
from brain.errors import AIError
from plans.store import load_plans, is_active, stamp_replanned
from server.database import get_db
from tasks.store import normalize_task, save_tasks, subjects_match
from users.utils import days_between, effective_streak, load_list, local_today

logger = logging.getLogger(__name__)

CRUNCH_MODE_DAYS = 3
QUIZ_WINDOW = 5

MOOD_GUIDANCE = {
    "fresh": "Focus on intense Core Learning and new complex topics. Energy is high.",
    "calm": "Steady progress. Balanced mix of learning and moderate practice.",
    "okay": "Neutral balance. Follow standard curriculum sequence.",
    "tired": "Shift to Reinforcement Revision and light practice. Avoid heavy new theory.",
    "stressed": "Focus on Comfort Revision and very easy tasks to build confidence.",
}


def build_plan_context(plan: dict, tasks: list[dict], quiz_results: list[dict], today: str) -> dict:
    subject = plan["subject"]
    plan_tasks = [t for t in tasks if subjects_match(t["subject"], subject)]
    missed = [t for t in plan_tasks if t["status"] == "pending" and (t["day_date"] or "") < today]
    upcoming = [t for t in plan_tasks if t["status"] == "pending" and (t["day_date"] or "") >= today]
    unfinished = [t["subtopic"] for t in missed + upcoming]

    exam_date = plan.get("exam_date") or "No deadline"
    crunch = False
    if plan["mode"] == "exam" and plan.get("exam_date"):
        crunch = days_between(today, plan["exam_date"]) <= CRUNCH_MODE_DAYS

    # quiz_results are newest first
    relevant = [q for q in quiz_results if subjects_match(q["subject"], subject)][:QUIZ_WINDOW]
    scored = [q for q in relevant if q["total"]]
    if scored:
        accuracy = sum(q["score"] / q["total"] for q in scored) / len(scored) * 100
        performance = f"{accuracy:.0f}% accuracy"
    else:
        performance = "No data yet"

    weak = []
    for q in relevant:
        for topic in load_list(q["weak_subtopics"]):
            if topic not in weak:
                weak.append(topic)

    return {
        "id": plan["id"],
        "subject": subject,
        "mode": plan["mode"],
        "exam_date": exam_date,
        "is_crunch_mode": crunch,
        "unfinished_topics": unfinished,
        "total_pending_tasks": len(unfinished),
        "performance_index": performance,
        "recent_weak_topics": weak,
    }


def build_prompt(user: dict, mood: str, contexts: list[dict], today: str) -> str:
    streak = effective_streak(user, today)
    hours = user.get("daily_hours") or 4
    guidance = MOOD_GUIDANCE.get(mood, "Neutral")

    return f"""You are an agentic study planner. Your goal is to REPLAN a student's schedule across MULTIPLE goals.

USER PROFILE:
- Today: {today}
- User Streak: {streak} days
- User Daily Capacity: {hours} hours/day
- Current Mood: {mood.upper()} ({guidance})

ACTIVE GOALS & STATUS:
{json.dumps(contexts, indent=2)}

STRICT PLANNING CONSTRAINTS (MANDATORY)
1. TASK COUNT CONSISTENCY: For each subject, the number of tasks in your output MUST MATCH its
   'total_pending_tasks'. Do NOT add new topics or remove existing ones.
   - EXCEPTION: if 'is_crunch_mode' is true for an EXAM plan, you MAY drop optional or minor
     subtopics to focus on high-yield revision. This is the ONLY exception.
2. MODE-SPECIFIC LOGIC:
   A. SKILL MODE (mode: 'skill'):
      - If 'performance_index' < 60% or 'recent_weak_topics' exist, schedule "Practice" or
        "Reinforcement Revision" for those topics today or tomorrow.
      - Adjust session intensity and order to the current mood.
      - NO CRUNCH MODE: every task MUST be preserved.
      - If tasks were missed in the past, shift the whole sequence forward starting from {today}.
   B. EXAM MODE (mode: 'exam'):
      - If 'performance_index' < 60% or 'recent_weak_topics' exist, schedule "Practice" or
        "Reinforcement Revision" for those topics today or tomorrow.
      - Task count stays the same UNLESS in crunch mode (< 3 days to exam).
3. STREAK: acknowledge the user's {streak}-day streak in 'aiExplanation' to keep them motivated.
4. MOOD DISTRIBUTION:
   - FRESH: assign the most complex subtopics to TODAY.
   - TIRED/STRESSED: assign easier, revision-based or bite-sized subtopics to TODAY.
5. BALANCED LOAD: distribute time across ALL active subjects daily.
   - Subjects with exams < 7 days away receive roughly 70% of the daily capacity.
   - No subject is starved (minimum 30-45 mins if tasks exist).
6. AVAILABILITY: total duration per day MUST NOT exceed {hours} hours, except crunch mode exams.
7. No date earlier than {today}.

OUTPUT:
Return ONLY a raw JSON array of task objects.
Format: [{{"subject": "Exact Subject Name", "topic": "Topic Name", "subtopic": "Subtopic", "duration": "45 mins", "date": "YYYY-MM-DD", "sessionType": "Core Learning", "aiExplanation": "...", "status": "pending"}}]"""


def ensure_optimal_plan(user: dict, mood: str | None = None, force: bool = False) -> dict:
    """Replan the user's pending tasks if needed. Never raises for AI failures."""
    mood = mood or user.get("current_mood") or "okay"
    today = local_today(user)
    db = get_db()
    try:
        plans = load_plans(db, user["id"])
        if not plans:
            return {"redistributed": False}

        active = [p for p in plans if is_active(p, today)]
        if not active:
            logger.info("No active plans for user %s, skipping replan", user["id"])
            return {"redistributed": False}

        trigger = next((p for p in active if p.get("last_replanned") != today), None)
        if not force and trigger is None:
            return {"redistributed": False}
        if force:
            logger.info("Forced replan for user %s (mood %s)", user["id"], mood)
        else:
            logger.info("Replan for user %s triggered by plan %s (last replanned %s)",
                        user["id"], trigger["id"], trigger.get("last_replanned") or "never")

        tasks = [dict(r) for r in db.execute(
            "SELECT * FROM tasks WHERE user_id = ? ORDER BY day_date, id", (user["id"],)
        ).fetchall()]
        quiz_results = [dict(r) for r in db.execute(
            "SELECT * FROM quiz_results WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user["id"],)
        ).fetchall()]
        contexts = [build_plan_context(p, tasks, quiz_results, today) for p in active]
        active_ids = [p["id"] for p in active]

        try:
            new_tasks = llm.complete_json(
                build_prompt(user, mood, contexts, today),
                source=f"Replan (user {user['id']})",
            )
        except AIError as exc:
            # Stamp anyway so a failing model does not trigger a replan on every request
            logger.error("Replan failed for user %s: %s", user["id"], exc)
            stamp_replanned(db, active_ids, today)
            db.commit()
            return {"redistributed": False, "error": str(exc)}

        if not isinstance(new_tasks, list) or not new_tasks:
            logger.warning("Replan for user %s produced no tasks, keeping existing schedule", user["id"])
            return {"redistributed": False, "count": 0}

        normalized = [
            normalize_task(t, default_date=today) for t in new_tasks if isinstance(t, dict)
        ]
        normalized = [t for t in normalized if t["subject"] and t["topic"]]
        if not normalized:
            logger.warning("Replan for user %s returned unusable tasks, keeping existing schedule", user["id"])
            return {"redistributed": False, "count": 0}
        for task in normalized:
            task["status"] = "pending"

        stale_ids = [
            t["id"] for t in tasks
            if t["status"] == "pending" and (
                t["plan_id"] in active_ids
                or (t["plan_id"] is None and any(subjects_match(t["subject"], p["subject"]) for p in active))
            )
        ]
        if stale_ids:
            placeholders = ",".join("?" * len(stale_ids))
            db.execute(f"DELETE FROM tasks WHERE id IN ({placeholders})", stale_ids)
        save_tasks(db, user["id"], normalized, plans=active)
        stamp_replanned(db, active_ids, today)
        db.commit()
        logger.info("Replan complete for user %s: %d tasks saved", user["id"], len(normalized))
        return {"redistributed": True, "count": len(normalized)}
    finally:
        db.close()


def adjust_for_mood(user: dict, mood: str) -> dict:
    return ensure_optimal_plan(user, mood, force=True)


def mark_topic_weak(user: dict, topic: str) -> dict:
    logger.info("Marking %s as weak for user %s", topic, user["id"])
    return ensure_optimal_plan(user, force=True)
