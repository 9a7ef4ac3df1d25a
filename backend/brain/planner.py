"""Plan generator: the first schedule for a newly added goal."""
from __future__ import annotations

import logging
from datetime import date, timedelta

from brain import llm
from brain.errors import AIResponseError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("subject", "topic", "subtopic", "duration", "date", "sessionType")
SPACED_REPETITION_MIN_DAYS = 14


def summarize_existing(plans: list[dict]) -> str:
    if not plans:
        return "None"
    return "\n".join(
        f"- {p.get('subject') or p.get('level') or p.get('skill')} "
        f"(Exam: {p.get('exam_date') or 'Self-paced'})"
        for p in plans
    )


def build_prompt(data: dict, existing_plans: list[dict], today: str, syllabus_context: str = "") -> str:
    hours = data.get("hours_per_day")
    subject = data.get("level") if data["mode"] == "exam" else data.get("skill")
    subject = subject or data.get("level") or data.get("skill") or "General"

    prompt = f"""You are a study planning intelligence for a student.
A student is ADDING a new goal. You must generate a plan that fits ALONGSIDE their current commitments.

TOTAL DAILY CAPACITY: {hours} hours/day.
EXISTING ACTIVE GOALS:
{summarize_existing(existing_plans)}

NEW GOAL TO ADD:
Mode: {data['mode']}
Subject/Level: {subject}
Exam/Target Date: {data.get('exam_date') or data.get('skill_duration')}
Learning style: {data.get('learning_style') or 'Mixed'}
Plan type: {data.get('plan_type') or 'balanced'}

PLANNING LOGIC (STRICT)
1. Time allocation and priority:
   - SHARE the {hours} daily hours across ALL active goals.
   - Goals with deadlines < 7 days away receive ~70% of the total daily time.
   - The total load per day must not exceed {hours} hours, UNLESS a goal is in crunch mode
     (deadline < 3 days), in which case availability can be exceeded to ensure readiness.
   - Session durations: 45-90 mins per session.
2. Output: return EXACTLY a JSON array of session objects, nothing else.

Each object must have:
- subject: string (MUST be exactly "{subject}")
- topic: string
- subtopic: string
- duration: string (e.g. "45 mins")
- date: string (YYYY-MM-DD)
- sessionType: string (e.g. "Core Learning", "Practice", "Active Revision")
- aiExplanation: string (how this session fits into the student's busy schedule)
- status: "pending"

INPUT:
"""
    if data["mode"] == "exam":
        prompt += (
            f"Today is {today}. Subject: {subject}. Total Syllabus: {data.get('syllabus') or 'not provided'}. "
            f"Exam Date: {data.get('exam_date')}. Daily Hours: {hours}.\n"
            f"Plan tasks from today until {data.get('exam_date')}. Focus on meaningful progression."
        )
    else:
        prompt += (
            f"Today is {today}. Skill: {subject}. Target Duration: {data.get('skill_duration')}. "
            f"Level: {data.get('level')}. Daily commitment: {hours} hours.\n"
            f"Plan starting from today."
        )

    if syllabus_context:
        prompt += (
            f"\n\nSYLLABUS DOCUMENTS:\n{syllabus_context}\n\n"
            "[IMPORTANT] Use the syllabus documents above to extract specific topics, modules and "
            "learning objectives, then structure the study plan on that material."
        )
    return prompt


def validate_tasks(items) -> list[dict]:
    """Generated sessions must be a non-empty list with every required field set."""
    if not isinstance(items, list) or not items:
        raise AIResponseError("Generated tasks array is empty or invalid")
    for item in items:
        if not isinstance(item, dict):
            raise AIResponseError("Generated task is not an object")
        for field in REQUIRED_FIELDS:
            if not item.get(field):
                raise AIResponseError(f"Task missing required field: {field}")
    return items


def apply_spaced_repetition(tasks: list[dict], exam_date: str | None, today: str) -> list[dict]:
    """1-4-7 rule: revisit each learning session 3 and 6 days later.

    Only when the exam is at least two weeks out, and only for copies that
    still land before the exam day.
    """
    if not exam_date:
        return tasks
    try:
        exam = date.fromisoformat(exam_date[:10])
    except ValueError:
        return tasks
    if (exam - date.fromisoformat(today)).days < SPACED_REPETITION_MIN_DAYS:
        return tasks

    extra = []
    for task in tasks:
        if "Learning" not in (task.get("sessionType") or ""):
            continue
        try:
            start = date.fromisoformat(str(task["date"])[:10])
        except ValueError:
            continue

        day4 = start + timedelta(days=3)
        if day4 < exam:
            extra.append({
                **task,
                "date": day4.isoformat(),
                "sessionType": "Reinforcement Revision",
                "aiExplanation": f"Spaced repetition interval: Reviewing {task['subtopic']} to solidify memory.",
                "is_revision": True,
            })
        day7 = start + timedelta(days=6)
        if day7 < exam:
            extra.append({
                **task,
                "date": day7.isoformat(),
                "sessionType": "Deep Revision",
                "aiExplanation": f"Second recall interval: Strengthening neural paths for {task['subtopic']}.",
                "is_revision": True,
            })
    return tasks + extra


def generate_plan_tasks(data: dict, existing_plans: list[dict], today: str,
                        syllabus_context: str = "") -> list[dict]:
    """Ask the model for the new goal's sessions and add spaced-repetition copies.

    Raises AIResponseError when the reply is not a usable session list.
    """
    prompt = build_prompt(data, existing_plans, today, syllabus_context)
    items = validate_tasks(llm.complete_json(prompt, source="Plan Generation"))
    exam_date = data.get("exam_date") if data["mode"] == "exam" else None
    optimized = apply_spaced_repetition(items, exam_date, today)
    logger.info("Generated %d tasks (optimized to %d)", len(items), len(optimized))
    return optimized
