"""Plan (onboarding) schemas."""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional

from tasks.schemas import TaskResponse


class SyllabusFile(BaseModel):
    filename: str = Field(default="syllabus", alias="name")
    data: str
    type: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class OnboardingRequest(BaseModel):
    """What the student tells us about a new goal.

    camelCase aliases match the web client; unknown keys are kept in `extra`.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    mode: Literal["exam", "skill"]
    level: Optional[str] = None
    skill: Optional[str] = None
    exam_date: Optional[str] = Field(default=None, alias="examDate")
    skill_duration: Optional[str] = Field(default=None, alias="skillDuration")
    hours_per_day: Optional[float] = Field(default=None, alias="hoursPerDay")
    plan_type: str = Field(default="balanced", alias="planType")
    learning_style: str = Field(default="Mixed", alias="learningStyle")
    syllabus: Optional[str] = None
    syllabus_files: List[SyllabusFile] = Field(default_factory=list, alias="syllabusFiles")
    # regenerate an existing (saved, possibly with uploaded files) plan instead of adding one
    plan_id: Optional[int] = Field(default=None, alias="planId")


class PlanResponse(BaseModel):
    id: int
    mode: str
    subject: str
    level: Optional[str] = None
    skill: Optional[str] = None
    exam_date: Optional[str] = None
    skill_duration: Optional[str] = None
    hours_per_day: Optional[float] = None
    plan_type: Optional[str] = None
    learning_style: Optional[str] = None
    syllabus: Optional[str] = None
    extra: dict = {}
    last_replanned: Optional[str] = None
    created_at: Optional[str] = None
    file_count: int = 0


class PlanFileResponse(BaseModel):
    id: int
    plan_id: int
    filename: str
    file_size: Optional[int]
    has_text: bool = False


class GeneratedPlanResponse(BaseModel):
    plan: PlanResponse
    tasks: List[TaskResponse]


class ActivePlansResponse(BaseModel):
    plans: List[PlanResponse]
    plan: Optional[PlanResponse] = None
    tasks: List[TaskResponse]


class ReplanRequest(BaseModel):
    mood: Optional[str] = None
