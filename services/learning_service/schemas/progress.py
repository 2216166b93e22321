"""Progress, submission and review schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.learning_service.models import ApprovalStatus
from services.learning_service.schemas.badge import BadgeResponse
from services.learning_service.schemas.catalog import (
    CourseResponse,
    SkillResponse,
    TaskResponse,
)
from services.learning_service.schemas.user import UserSummary
from services.learning_service.services.consistency import completion_percentage


class TaskUploadResponse(BaseModel):
    url: str
    original_name: str
    position: int
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TaskProgressResponse(BaseModel):
    task_id: uuid.UUID
    completed: bool
    completed_at: Optional[datetime] = None
    uploads: list[TaskUploadResponse] = []
    submitted_for_review: bool
    submitted_at: Optional[datetime] = None
    coach_rating: Optional[int] = None
    coach_feedback: str = ""
    coach_rated_at: Optional[datetime] = None
    reviewed: bool
    approval: ApprovalStatus
    reviewed_at: Optional[datetime] = None
    review_feedback: str = ""
    seen_by_student: bool

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entry(cls, entry) -> "TaskProgressResponse":
        return cls(
            task_id=entry.task_id,
            completed=entry.completed,
            completed_at=entry.completed_at,
            uploads=[TaskUploadResponse.model_validate(u) for u in entry.uploads],
            submitted_for_review=entry.submitted_for_review,
            submitted_at=entry.submitted_at,
            coach_rating=entry.coach_rating,
            coach_feedback=entry.coach_feedback or "",
            coach_rated_at=entry.coach_rated_at,
            reviewed=entry.reviewed,
            approval=entry.approval,
            reviewed_at=entry.reviewed_at,
            review_feedback=entry.review_feedback or "",
            seen_by_student=entry.seen_by_student,
        )


class ProgressResponse(BaseModel):
    """Progress summary. Empty (all zero) when no record exists yet."""

    course_id: uuid.UUID
    user_id: uuid.UUID
    completed_tasks: list[uuid.UUID] = []
    completed_tasks_count: int = 0
    total_tasks: int = 0
    completion_percentage: int = 0
    average_rating: float = 0.0
    last_activity: Optional[datetime] = None
    task_progress: list[TaskProgressResponse] = []

    @classmethod
    def from_record(cls, progress) -> "ProgressResponse":
        return cls(
            course_id=progress.course_id,
            user_id=progress.user_id,
            completed_tasks=progress.completed_task_ids,
            completed_tasks_count=progress.completed_tasks_count,
            total_tasks=progress.total_tasks,
            completion_percentage=completion_percentage(
                progress.completed_tasks_count, progress.total_tasks
            ),
            average_rating=progress.average_rating,
            last_activity=progress.last_activity,
            task_progress=[
                TaskProgressResponse.from_entry(entry)
                for entry in progress.task_progress
            ],
        )


class CompleteTaskRequest(BaseModel):
    course_id: uuid.UUID
    task_id: uuid.UUID


class CompleteTaskResponse(BaseModel):
    progress: ProgressResponse
    new_badges: list[BadgeResponse] = []


class RateTaskRequest(BaseModel):
    student_id: uuid.UUID
    task_id: uuid.UUID
    rating: Optional[int] = None
    feedback: Optional[str] = None


class ReviewTaskRequest(BaseModel):
    student_id: uuid.UUID
    task_id: uuid.UUID
    approved: bool
    feedback: Optional[str] = None


class MarkSeenResponse(BaseModel):
    updated: int


class SubmissionResponse(BaseModel):
    student: UserSummary
    progress: ProgressResponse


class StudentTaskRow(BaseModel):
    task: TaskResponse
    skill_id: uuid.UUID
    skill_title: str
    progress: Optional[TaskProgressResponse] = None


class StudentOverviewResponse(BaseModel):
    student_id: uuid.UUID
    progress: ProgressResponse
    tasks: list[StudentTaskRow]

    @classmethod
    def build(cls, *, course_id, student_id, rows, progress) -> "StudentOverviewResponse":
        summary = (
            ProgressResponse.from_record(progress)
            if progress
            else ProgressResponse(course_id=course_id, user_id=student_id)
        )
        return cls(
            student_id=student_id,
            progress=summary,
            tasks=[
                StudentTaskRow(
                    task=TaskResponse.model_validate(task),
                    skill_id=skill.id,
                    skill_title=skill.title,
                    progress=(
                        TaskProgressResponse.from_entry(entry) if entry else None
                    ),
                )
                for task, skill, entry in rows
            ],
        )


# ---------------------------------------------------------------------------
# Coach dashboard
# ---------------------------------------------------------------------------


class StudentProgressSummary(BaseModel):
    completed_tasks: int
    total_tasks: int
    completion_percentage: int
    average_rating: float
    last_activity: Optional[datetime] = None
    pending_reviews: int
    task_progress: list[TaskProgressResponse] = []


class DashboardStudent(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    progress: StudentProgressSummary


class CourseStats(BaseModel):
    total_students: int
    total_tasks: int
    average_completion: int
    average_rating: float = Field(..., description="Mean of student averages")
    pending_reviews: int


class CourseDashboardResponse(BaseModel):
    course: CourseResponse
    skills: list[SkillResponse]
    students: list[DashboardStudent]
    stats: CourseStats
