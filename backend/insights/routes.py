"""Insights routes."""

from fastapi import APIRouter, Depends
from server.database import get_db
from auth.utils import get_current_user
from insights import service
from users.utils import local_today

router = APIRouter()


def _load(user_id: int):
    db = get_db()
    tasks = [dict(r) for r in db.execute(
        "SELECT * FROM tasks WHERE user_id = ?", (user_id,)
    ).fetchall()]
    quiz_results = [dict(r) for r in db.execute(
        "SELECT * FROM quiz_results WHERE user_id = ? ORDER BY created_at DESC, id DESC", (user_id,)
    ).fetchall()]
    moods = [r["mood"] for r in db.execute(
        "SELECT mood FROM mood_history WHERE user_id = ?", (user_id,)
    ).fetchall()]
    db.close()
    return tasks, quiz_results, moods


@router.get("/insights")
def get_insights(current_user: dict = Depends(get_current_user)):
    tasks, quiz_results, _ = _load(current_user["id"])
    return {"insights": service.generate_insights(current_user, tasks, quiz_results)}


@router.get("/insights/summary")
def get_insights_summary(current_user: dict = Depends(get_current_user)):
    tasks, quiz_results, moods = _load(current_user["id"])
    return service.summarize(current_user, tasks, quiz_results, moods, local_today(current_user))
