"""User schemas."""

from pydantic import BaseModel
from typing import List, Optional


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    daily_hours: float = 4.0
    timezone_offset: Optional[int] = 0
    current_mood: Optional[str] = None
    last_mood_date: Optional[str] = None
    current_streak: int = 0
    last_streak_date: Optional[str] = None


class ProfileResponse(UserResponse):
    streak_history: List[str] = []
    needs_mood_check: bool = True


class UserUpdate(BaseModel):
    name: Optional[str] = None
    daily_hours: Optional[float] = None
    timezone_offset: Optional[int] = None


class MoodRequest(BaseModel):
    mood: Optional[str] = None


class MoodEntry(BaseModel):
    day_date: str
    mood: str
