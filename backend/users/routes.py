"""User profile, mood check-in and streak routes."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from typing import List
from server.database import get_db
from auth.utils import get_current_user
from brain import replanner
from users.schemas import ProfileResponse, UserUpdate, MoodRequest, MoodEntry
from users.utils import MOODS, effective_streak, load_list, local_today

logger = logging.getLogger(__name__)

router = APIRouter()


def _profile(user: dict, today: str) -> ProfileResponse:
    fields = {k: user.get(k) for k in ProfileResponse.model_fields if k in user}
    fields["streak_history"] = load_list(user.get("streak_history"))
    fields["needs_mood_check"] = user.get("last_mood_date") != today
    return ProfileResponse(**fields)


@router.get("/user/profile", response_model=ProfileResponse)
def get_profile(current_user: dict = Depends(get_current_user)):
    today = local_today(current_user)
    user = dict(current_user)

    streak = effective_streak(user, today)
    if streak != (user.get("current_streak") or 0):
        db = get_db()
        db.execute("UPDATE users SET current_streak = ? WHERE id = ?", (streak, user["id"]))
        db.commit()
        db.close()
        logger.info("Streak reset for user %s (last kept %s)", user["id"], user.get("last_streak_date"))
        user["current_streak"] = streak

    return _profile(user, today)


@router.patch("/user/profile", response_model=ProfileResponse)
def update_profile(body: UserUpdate, current_user: dict = Depends(get_current_user)):
    updates = {k: v for k, v in body.model_dump().items() if v is not None}
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    if "daily_hours" in updates and not 0 < updates["daily_hours"] <= 24:
        raise HTTPException(status_code=400, detail="daily_hours must be between 0 and 24")
    if "name" in updates and not updates["name"].strip():
        raise HTTPException(status_code=400, detail="Name is required")

    db = get_db()
    set_clause = ", ".join(f"{k} = ?" for k in updates)
    values = list(updates.values()) + [current_user["id"]]
    db.execute(f"UPDATE users SET {set_clause} WHERE id = ?", values)
    db.commit()

    row = db.execute("SELECT * FROM users WHERE id = ?", (current_user["id"],)).fetchone()
    db.close()
    user = dict(row)
    return _profile(user, local_today(user))


@router.post("/user/mood")
def log_mood(body: MoodRequest, current_user: dict = Depends(get_current_user)):
    """Daily mood check-in; reshapes the schedule around how the student feels."""
    mood = (body.mood or "").strip().lower()
    if not mood:
        raise HTTPException(status_code=400, detail="Mood is required")
    if mood not in MOODS:
        raise HTTPException(status_code=400, detail=f"mood must be one of {', '.join(MOODS)}")

    today = local_today(current_user)
    if current_user.get("last_mood_date") == today:
        raise HTTPException(status_code=400, detail="Mood already logged today")

    db = get_db()
    db.execute(
        "INSERT INTO mood_history (user_id, mood, day_date) VALUES (?, ?, ?)",
        (current_user["id"], mood, today)
    )
    db.execute(
        "UPDATE users SET current_mood = ?, last_mood_date = ? WHERE id = ?",
        (mood, today, current_user["id"])
    )
    db.commit()
    db.close()
    logger.info("Mood logged for user %s: %s", current_user["id"], mood)

    user = {**current_user, "current_mood": mood, "last_mood_date": today}
    replan = replanner.adjust_for_mood(user, mood)

    return {"message": "Mood saved successfully", "mood": mood, "date": today, "replan": replan}


@router.get("/user/mood-history", response_model=List[MoodEntry])
def get_mood_history(current_user: dict = Depends(get_current_user)):
    db = get_db()
    rows = db.execute(
        "SELECT day_date, mood FROM mood_history WHERE user_id = ? ORDER BY day_date DESC, id DESC",
        (current_user["id"],)
    ).fetchall()
    db.close()
    return [MoodEntry(**dict(r)) for r in rows]
