"""Plan rows: loading, activity filter, persistence."""
from __future__ import annotations

import json


def plan_subject(data: dict) -> str:
    """Exam plans are named after the exam subject (level), skill plans after the skill."""
    if data.get("mode") == "exam":
        return (data.get("level") or data.get("skill") or "General").strip() or "General"
    return (data.get("skill") or data.get("level") or "General").strip() or "General"


def is_active(plan: dict, today: str) -> bool:
    """Exam plans expire after the exam day; skill plans never do."""
    if plan.get("mode") == "exam" and plan.get("exam_date"):
        return plan["exam_date"][:10] >= today
    return True


def row_to_plan(row, file_count: int = 0) -> dict:
    d = dict(row)
    try:
        extra = json.loads(d.get("extra") or "{}")
    except ValueError:
        extra = {}
    d["extra"] = extra if isinstance(extra, dict) else {}
    d["file_count"] = file_count
    d.pop("user_id", None)
    return d


def load_plans(db, user_id: int) -> list[dict]:
    rows = db.execute(
        """SELECT p.*, (SELECT COUNT(*) FROM plan_files f WHERE f.plan_id = p.id) AS file_count
           FROM plans p WHERE p.user_id = ? ORDER BY p.created_at DESC, p.id DESC""",
        (user_id,)
    ).fetchall()
    plans = []
    for r in rows:
        d = dict(r)
        count = d.pop("file_count", 0)
        plans.append(row_to_plan(d, count))
    return plans


def load_active_plans(db, user_id: int, today: str) -> list[dict]:
    return [p for p in load_plans(db, user_id) if is_active(p, today)]


def get_plan(db, user_id: int, plan_id: int) -> dict | None:
    row = db.execute(
        "SELECT * FROM plans WHERE id = ? AND user_id = ?", (plan_id, user_id)
    ).fetchone()
    if not row:
        return None
    count = db.execute(
        "SELECT COUNT(*) FROM plan_files WHERE plan_id = ?", (plan_id,)
    ).fetchone()[0]
    return row_to_plan(row, count)


def insert_plan(db, user_id: int, data: dict, extra: dict, last_replanned: str | None) -> int:
    cursor = db.execute(
        """INSERT INTO plans (user_id, mode, subject, level, skill, exam_date, skill_duration,
               hours_per_day, plan_type, learning_style, syllabus, extra, last_replanned)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        (user_id, data["mode"], plan_subject(data), data.get("level"), data.get("skill"),
         data.get("exam_date"), data.get("skill_duration"), data.get("hours_per_day"),
         data.get("plan_type") or "balanced", data.get("learning_style") or "Mixed",
         data.get("syllabus"), json.dumps(extra or {}), last_replanned)
    )
    return cursor.lastrowid


def stamp_replanned(db, plan_ids: list[int], today: str):
    if not plan_ids:
        return
    placeholders = ",".join("?" * len(plan_ids))
    db.execute(
        f"UPDATE plans SET last_replanned = ? WHERE id IN ({placeholders})",
        [today, *plan_ids]
    )


def syllabus_texts(db, plan_id: int) -> list[tuple[str, str]]:
    rows = db.execute(
        "SELECT filename, extracted_text FROM plan_files WHERE plan_id = ? ORDER BY id",
        (plan_id,)
    ).fetchall()
    return [(r["filename"], r["extracted_text"] or "") for r in rows]
