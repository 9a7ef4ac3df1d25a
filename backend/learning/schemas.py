"""Learning schemas: tutor chat, lesson content, quizzes, resources."""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Literal, Optional


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    message: Optional[str] = None
    history: List[ChatTurn] = []


class LearningContentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: str
    topic: str
    level: Optional[str] = None
    exam_date: Optional[str] = Field(default=None, alias="examDate")
    learning_style: Optional[str] = Field(default=None, alias="learningStyle")
    session_type: Optional[str] = Field(default=None, alias="sessionType")


class QuizGenerateRequest(BaseModel):
    subject: str
    topic: str


class QuizEvaluateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subject: str
    topic: str
    questions: List[Any]
    responses: Any
    exam_date: Optional[str] = Field(default=None, alias="examDate")
    task_id: Optional[int] = Field(default=None, alias="taskId")


class QuizResultResponse(BaseModel):
    id: int
    task_id: Optional[int] = None
    subject: Optional[str] = None
    topic: Optional[str] = None
    score: int
    total: int
    weak_subtopics: List[str] = []
    stable_subtopics: List[str] = []
    created_at: Optional[str] = None


class ResourcesRequest(BaseModel):
    topic: str = ""
    subject: str = ""
    subtopic: Optional[str] = None
