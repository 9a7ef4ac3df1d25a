"""Task persistence shared by the routes, the plan generator and the replanner.

Model output uses camelCase keys (sessionType, aiExplanation, date); the
database and the API use snake_case. Everything that turns a model/client
task dict into a row goes through `normalize_task`.
"""

from __future__ import annotations

import json

TASK_STATUSES = ("pending", "in_progress", "completed")

_ALIASES = {
    "session_type": ("session_type", "sessionType"),
    "ai_explanation": ("ai_explanation", "aiExplanation"),
    "day_date": ("date", "day_date"),
    "quiz_status": ("quiz_status", "quizStatus"),
    "completed_subtopics": ("completed_subtopics", "completedSubtopics"),
}


def _pick(item: dict, key: str):
    for name in _ALIASES.get(key, (key,)):
        if item.get(name) is not None:
            return item[name]
    return None


def duration_text(value):
    # The model sometimes answers 45 instead of "45 mins"
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:g} mins"
    return value


def subjects_match(a: str | None, b: str | None) -> bool:
    """Case-insensitive containment in either direction."""
    a = (a or "").strip().lower()
    b = (b or "").strip().lower()
    if not a or not b:
        return False
    return a in b or b in a


def normalize_task(item: dict, default_date: str | None = None) -> dict:
    status = _pick(item, "status")
    if status not in TASK_STATUSES:
        status = "pending"
    completed = _pick(item, "completed_subtopics") or []
    return {
        "subject": str(_pick(item, "subject") or "").strip(),
        "topic": str(_pick(item, "topic") or "").strip(),
        "subtopic": _pick(item, "subtopic"),
        "duration": duration_text(_pick(item, "duration")),
        "day_date": (_pick(item, "day_date") or default_date),
        "session_type": _pick(item, "session_type"),
        "ai_explanation": _pick(item, "ai_explanation"),
        "status": status,
        "quiz_status": _pick(item, "quiz_status"),
        "completed_subtopics": completed if isinstance(completed, list) else [],
        "is_revision": 1 if item.get("is_revision") else 0,
    }


def row_to_task(row) -> dict:
    d = dict(row)
    try:
        completed = json.loads(d.get("completed_subtopics") or "[]")
    except ValueError:
        completed = []
    return {
        "id": d["id"],
        "plan_id": d.get("plan_id"),
        "subject": d["subject"],
        "topic": d["topic"],
        "subtopic": d.get("subtopic"),
        "duration": d.get("duration"),
        "date": d.get("day_date"),
        "session_type": d.get("session_type"),
        "ai_explanation": d.get("ai_explanation"),
        "status": d.get("status") or "pending",
        "quiz_status": d.get("quiz_status"),
        "completed_subtopics": completed,
        "is_revision": bool(d.get("is_revision")),
    }


def insert_task(db, user_id: int, task: dict, plan_id: int | None = None) -> int:
    cursor = db.execute(
        """INSERT INTO tasks (user_id, plan_id, subject, topic, subtopic, duration,
               day_date, session_type, ai_explanation, status, quiz_status,
               completed_subtopics, is_revision)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (user_id, plan_id, task["subject"], task["topic"], task.get("subtopic"),
         task.get("duration"), task.get("day_date"), task.get("session_type"),
         task.get("ai_explanation"), task.get("status", "pending"), task.get("quiz_status"),
         json.dumps(task.get("completed_subtopics") or []), task.get("is_revision", 0))
    )
    return cursor.lastrowid


def save_tasks(db, user_id: int, tasks: list[dict], plan_id: int | None = None,
               plans: list[dict] | None = None) -> list[dict]:
    """Insert normalized tasks and return them as API dicts.

    When `plans` is given, each task without an explicit plan is linked to the
    first plan whose subject matches the task's subject.
    """
    ids = []
    for task in tasks:
        target_plan = plan_id
        if target_plan is None and plans:
            target_plan = next(
                (p["id"] for p in plans if subjects_match(p["subject"], task["subject"])),
                None,
            )
        ids.append(insert_task(db, user_id, task, target_plan))
    if not ids:
        return []
    placeholders = ",".join("?" * len(ids))
    rows = db.execute(
        f"SELECT * FROM tasks WHERE id IN ({placeholders}) ORDER BY day_date, id", ids
    ).fetchall()
    return [row_to_task(r) for r in rows]
