"""Per-user calendar helpers: local 'today', streak bookkeeping."""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone

MOODS = ("fresh", "calm", "okay", "tired", "stressed")


def local_now(user: dict) -> datetime:
    """Current wall-clock time for the user.

    timezone_offset follows JS getTimezoneOffset(): offset = UTC - local,
    so local = UTC - offset (e.g. UTC+2 -> offset=-120).
    """
    now_utc = datetime.now(timezone.utc)
    return now_utc - timedelta(minutes=user.get("timezone_offset") or 0)


def local_today(user: dict) -> str:
    return local_now(user).strftime("%Y-%m-%d")


def shift_day(day: str, days: int) -> str:
    return (date.fromisoformat(day) + timedelta(days=days)).isoformat()


def days_between(start: str, end: str) -> int:
    """Whole days from start to end (negative when end is earlier)."""
    return (date.fromisoformat(end[:10]) - date.fromisoformat(start[:10])).days


def load_list(raw) -> list:
    if not raw:
        return []
    if isinstance(raw, list):
        return raw
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return []
    return value if isinstance(value, list) else []


def effective_streak(user: dict, today: str) -> int:
    """Streak as it should be shown today: broken if not kept today or yesterday."""
    streak = user.get("current_streak") or 0
    last = user.get("last_streak_date")
    if streak > 0 and last not in (today, shift_day(today, -1)):
        return 0
    return streak


def advance_streak(user: dict, today: str) -> tuple[int, list[str]] | None:
    """New (streak, history) after a successful session today.

    Returns None when the streak was already kept today.
    """
    last = user.get("last_streak_date")
    if last == today:
        return None
    streak = (user.get("current_streak") or 0) + 1 if last == shift_day(today, -1) else 1
    history = load_list(user.get("streak_history"))
    if today not in history:
        history.append(today)
    return streak, history
