"""Task routes."""

import json
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from server.database import get_db
from auth.utils import get_current_user
from tasks.schemas import TaskResponse, TaskCreate, TaskProgressUpdate
from tasks.store import TASK_STATUSES, normalize_task, row_to_task, save_tasks
from users.utils import local_today

router = APIRouter()


def _valid_date(value: str) -> bool:
    try:
        date.fromisoformat(value)
    except (TypeError, ValueError):
        return False
    return True


@router.get("/tasks", response_model=List[TaskResponse])
def get_tasks(
    plan_id: Optional[int] = None,
    status: Optional[str] = None,
    date_from: Optional[str] = Query(default=None),
    date_to: Optional[str] = Query(default=None),
    current_user: dict = Depends(get_current_user),
):
    clauses = ["user_id = ?"]
    params: list = [current_user["id"]]
    if plan_id is not None:
        clauses.append("plan_id = ?")
        params.append(plan_id)
    if status is not None:
        clauses.append("status = ?")
        params.append(status)
    if date_from:
        clauses.append("day_date >= ?")
        params.append(date_from)
    if date_to:
        clauses.append("day_date <= ?")
        params.append(date_to)

    db = get_db()
    rows = db.execute(
        f"SELECT * FROM tasks WHERE {' AND '.join(clauses)} ORDER BY day_date, id",
        params,
    ).fetchall()
    db.close()
    return [TaskResponse(**row_to_task(r)) for r in rows]


@router.get("/tasks/history", response_model=List[TaskResponse])
def get_task_history(current_user: dict = Depends(get_current_user)):
    """Completed sessions, most recent first."""
    db = get_db()
    rows = db.execute(
        "SELECT * FROM tasks WHERE user_id = ? AND status = 'completed' ORDER BY day_date DESC, id DESC",
        (current_user["id"],)
    ).fetchall()
    db.close()
    return [TaskResponse(**row_to_task(r)) for r in rows]


@router.post("/tasks", response_model=List[TaskResponse])
def create_tasks(body: List[TaskCreate], current_user: dict = Depends(get_current_user)):
    """Save a batch of tasks (e.g. revision sessions suggested after a quiz)."""
    today = local_today(current_user)
    normalized = []
    for item in body:
        task = normalize_task(item.model_dump(), default_date=today)
        if not task["subject"] or not task["topic"]:
            raise HTTPException(status_code=400, detail="Every task needs a subject and a topic")
        if not _valid_date(task["day_date"]):
            raise HTTPException(status_code=400, detail=f"Invalid date: {task['day_date']}")
        normalized.append((item.plan_id, task))

    db = get_db()
    try:
        plan_ids = {pid for pid, _ in normalized if pid is not None}
        if plan_ids:
            placeholders = ",".join("?" * len(plan_ids))
            owned = {
                r["id"] for r in db.execute(
                    f"SELECT id FROM plans WHERE user_id = ? AND id IN ({placeholders})",
                    [current_user["id"], *plan_ids]
                ).fetchall()
            }
            if owned != plan_ids:
                raise HTTPException(status_code=404, detail="Plan not found")

        plans = [dict(p) for p in db.execute(
            "SELECT id, subject FROM plans WHERE user_id = ?", (current_user["id"],)
        ).fetchall()]
        saved = []
        for plan_id, task in normalized:
            saved.extend(save_tasks(db, current_user["id"], [task], plan_id=plan_id, plans=plans))
        db.commit()
    finally:
        db.close()
    return [TaskResponse(**t) for t in saved]


@router.patch("/tasks/{task_id}/progress", response_model=TaskResponse)
def update_task_progress(task_id: int, body: TaskProgressUpdate, current_user: dict = Depends(get_current_user)):
    db = get_db()
    task = db.execute(
        "SELECT * FROM tasks WHERE id = ? AND user_id = ?", (task_id, current_user["id"])
    ).fetchone()
    if not task:
        db.close()
        raise HTTPException(status_code=404, detail="Task not found")

    updates = []
    values = []
    if body.status is not None:
        if body.status not in TASK_STATUSES:
            db.close()
            raise HTTPException(status_code=400, detail=f"status must be one of {', '.join(TASK_STATUSES)}")
        updates.append("status = ?")
        values.append(body.status)
    if body.quiz_status is not None:
        updates.append("quiz_status = ?")
        values.append(body.quiz_status)
    if body.completed_subtopics is not None:
        updates.append("completed_subtopics = ?")
        values.append(json.dumps(body.completed_subtopics))
    if body.date is not None:
        if not _valid_date(body.date):
            db.close()
            raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")
        updates.append("day_date = ?")
        values.append(body.date)
    if body.duration is not None:
        updates.append("duration = ?")
        values.append(body.duration)

    if updates:
        values.extend([task_id, current_user["id"]])
        db.execute(f"UPDATE tasks SET {', '.join(updates)} WHERE id = ? AND user_id = ?", values)
        db.commit()

    row = db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
    db.close()
    return TaskResponse(**row_to_task(row))


@router.delete("/tasks/{task_id}")
def delete_task(task_id: int, current_user: dict = Depends(get_current_user)):
    db = get_db()
    cursor = db.execute(
        "DELETE FROM tasks WHERE id = ? AND user_id = ?", (task_id, current_user["id"])
    )
    db.commit()
    db.close()
    if cursor.rowcount == 0:
        raise HTTPException(status_code=404, detail="Task not found")
    return {"message": "Task deleted"}
