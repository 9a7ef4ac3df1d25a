"""Task schemas."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from tasks.store import duration_text


class TaskResponse(BaseModel):
    id: int
    plan_id: Optional[int] = None
    subject: str
    topic: str
    subtopic: Optional[str] = None
    duration: Optional[str] = None
    date: Optional[str] = None
    session_type: Optional[str] = None
    ai_explanation: Optional[str] = None
    status: str = "pending"
    quiz_status: Optional[str] = None
    completed_subtopics: List[str] = []
    is_revision: bool = False

    coerce_duration = field_validator("duration", mode="before")(duration_text)


class TaskCreate(BaseModel):
    """Accepts both API (snake_case) and model-output (camelCase) keys."""

    model_config = ConfigDict(populate_by_name=True)

    plan_id: Optional[int] = None
    subject: str = ""
    topic: str = ""
    subtopic: Optional[str] = None
    duration: Optional[str] = None
    date: Optional[str] = None
    session_type: Optional[str] = Field(default=None, alias="sessionType")
    ai_explanation: Optional[str] = Field(default=None, alias="aiExplanation")
    status: Optional[str] = None
    is_revision: bool = False

    coerce_duration = field_validator("duration", mode="before")(duration_text)


class TaskProgressUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    quiz_status: Optional[str] = Field(default=None, alias="quizStatus")
    completed_subtopics: Optional[List[str]] = Field(default=None, alias="completedSubtopics")
    date: Optional[str] = None
    duration: Optional[str] = None

    coerce_duration = field_validator("duration", mode="before")(duration_text)
