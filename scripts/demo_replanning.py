"""Terminal demo of the replan engine.

Seeds a throwaway user with a Calculus exam 5 days out, one completed, one
missed and one upcoming session, replans with mood "tired" and prints the
schedule before and after. Needs ANTHROPIC_API_KEY; uses DB_PATH from .env.
"""
import os
import secrets
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "backend"))

from server.database import get_db, init_db  # noqa: E402
from server.logging_config import init_logging  # noqa: E402
from auth.utils import hash_password  # noqa: E402
from brain import replanner  # noqa: E402
from plans.store import insert_plan  # noqa: E402
from tasks.store import normalize_task, save_tasks  # noqa: E402
from users.utils import local_today, shift_day  # noqa: E402


def print_schedule(db, user_id):
    rows = db.execute(
        "SELECT day_date, status, subtopic, session_type FROM tasks WHERE user_id = ? ORDER BY day_date, id",
        (user_id,)
    ).fetchall()
    for r in rows:
        print(f" - [{r['status']}] {r['day_date']}: {r['subtopic']} ({r['session_type']})")


def main():
    init_logging()
    init_db()

    email = f"demo_{secrets.token_hex(4)}@test.com"
    db = get_db()
    cursor = db.execute(
        "INSERT INTO users (name, email, password_hash, daily_hours) VALUES (?, ?, ?, ?)",
        ("Demo Student", email, hash_password("password123"), 4)
    )
    user = dict(db.execute("SELECT * FROM users WHERE id = ?", (cursor.lastrowid,)).fetchone())
    today = local_today(user)
    print(f"Created test user: {email}")

    plan_id = insert_plan(db, user["id"], {
        "mode": "exam",
        "level": "Calculus",
        "exam_date": shift_day(today, 5),
        "hours_per_day": 4,
        "syllabus": "Derivatives, Integrals, Differential Equations",
    }, {}, None)

    seed = [
        {"subject": "Calculus", "topic": "Calculus", "subtopic": "Limits & Continuity", "duration": "1 hr",
         "date": shift_day(today, -2), "sessionType": "Core Learning", "status": "completed",
         "aiExplanation": "Foundation"},
        {"subject": "Calculus", "topic": "Calculus", "subtopic": "Standard Derivatives", "duration": "2 hrs",
         "date": shift_day(today, -1), "sessionType": "Core Learning", "status": "pending",
         "aiExplanation": "Should have finished this yesterday"},
        {"subject": "Calculus", "topic": "Calculus", "subtopic": "Chain Rule", "duration": "1.5 hrs",
         "date": shift_day(today, 1), "sessionType": "Core Learning", "status": "pending",
         "aiExplanation": "Scheduled for tomorrow"},
    ]
    save_tasks(db, user["id"], [normalize_task(t) for t in seed], plan_id=plan_id)
    db.commit()

    print("\nCURRENT STATE (before replanning):")
    print_schedule(db, user["id"])

    print("\nReplanning with mood 'tired'...")
    result = replanner.ensure_optimal_plan(user, "tired", force=True)
    print(f"Result: {result}")

    print("\nNEW STATE (after replanning):")
    print_schedule(db, user["id"])
    db.close()
    return 0 if result.get("redistributed") else 1


if __name__ == "__main__":
    sys.exit(main())
