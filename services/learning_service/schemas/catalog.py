"""Course, skill and task schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.learning_service.models import TaskContentType
from services.learning_service.schemas.user import UserSummary

# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class TaskResponse(BaseModel):
    id: uuid.UUID
    skill_id: uuid.UUID
    title: str
    content_type: TaskContentType
    content_urls: list[str]
    deadline: Optional[datetime] = None
    position: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    deadline: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


class SkillResponse(BaseModel):
    id: uuid.UUID
    course_id: uuid.UUID
    title: str
    description: str
    position: int
    tasks: list[TaskResponse] = []

    model_config = ConfigDict(from_attributes=True)


class SkillCreate(BaseModel):
    course_id: uuid.UUID
    title: str = ""
    description: str = ""


class SkillUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


class CourseBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class CourseCreate(CourseBase):
    pass


class CourseUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class CourseResponse(CourseBase):
    id: uuid.UUID
    coach_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CourseListItem(CourseResponse):
    coach: Optional[UserSummary] = None


class CourseDetailResponse(CourseResponse):
    skills: list[SkillResponse] = []


class CoachCourseResponse(CourseDetailResponse):
    student_count: int = 0
