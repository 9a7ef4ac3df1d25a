"""
Nightly replan sweep.
Runs inside FastAPI using APScheduler. Once a day it walks every user who has
an active plan that has not been replanned on the user's local today and runs
the replan engine for them, so the dashboard opens on a fresh schedule.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from server import config
from server.database import get_db
from brain import replanner
from plans.store import is_active
from users.utils import local_today

logger = logging.getLogger(__name__)


def users_due_for_replan(db) -> list[dict]:
    users = [dict(r) for r in db.execute(
        "SELECT * FROM users WHERE id IN (SELECT DISTINCT user_id FROM plans)"
    ).fetchall()]
    due = []
    for user in users:
        today = local_today(user)
        plans = db.execute(
            "SELECT mode, exam_date, last_replanned FROM plans WHERE user_id = ?", (user["id"],)
        ).fetchall()
        if any(is_active(dict(p), today) and p["last_replanned"] != today for p in plans):
            due.append(user)
    return due


def run_replan_sweep() -> dict:
    """Replan every user that is due. Returns {users, redistributed, errors} counts."""
    db = get_db()
    try:
        due = users_due_for_replan(db)
    finally:
        db.close()

    summary = {"users": len(due), "redistributed": 0, "errors": 0}
    for user in due:
        try:
            result = replanner.ensure_optimal_plan(user, user.get("current_mood"))
        except Exception:
            logger.exception("Replan sweep failed for user %s", user["id"])
            summary["errors"] += 1
            continue
        if result.get("redistributed"):
            summary["redistributed"] += 1
        if result.get("error"):
            summary["errors"] += 1

    logger.info("Replan sweep finished: %(users)d users, %(redistributed)d replanned, %(errors)d errors", summary)
    return summary


def start_scheduler() -> AsyncIOScheduler:
    """Create, configure, and start the APScheduler background scheduler."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_replan_sweep,
        trigger="cron",
        hour=config.REPLAN_SWEEP_HOUR,
        minute=0,
        id="replan_sweep_job",
        replace_existing=True,
        coalesce=True,
    )
    scheduler.start()
    logger.info("[Scheduler] Replan sweep scheduled daily at %02d:00", config.REPLAN_SWEEP_HOUR)
    return scheduler
