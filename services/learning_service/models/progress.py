import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.learning_service.models.enums import ApprovalStatus, enum_values
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# PROGRESS MODELS
# ============================================================================


class ProgressRecord(Base):
    """Per-student, per-course completion and rating state.

    ``completed_tasks_count``, ``total_tasks`` and ``average_rating`` are
    cached values; services.consistency.refresh_derived_totals is the only
    writer.
    """

    __tablename__ = "progress_records"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_progress_records_user_course"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("courses.id"), nullable=False, index=True
    )

    # Derived
    completed_tasks_count: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0"
    )
    total_tasks: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    average_rating: Mapped[float] = mapped_column(
        Float, default=0.0, server_default="0"
    )

    last_activity: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    user = relationship("User")
    course = relationship("Course")
    completed_tasks = relationship(
        "CompletedTask",
        back_populates="progress",
        cascade="all, delete-orphan",
        order_by="CompletedTask.completed_at",
    )
    task_progress = relationship(
        "TaskProgress",
        back_populates="progress",
        cascade="all, delete-orphan",
        order_by="TaskProgress.created_at",
    )

    @property
    def completed_task_ids(self) -> list[uuid.UUID]:
        return [row.task_id for row in self.completed_tasks]

    def entry_for(self, task_id: uuid.UUID) -> Optional["TaskProgress"]:
        for entry in self.task_progress:
            if entry.task_id == task_id:
                return entry
        return None

    def __repr__(self):
        return f"<ProgressRecord User={self.user_id} Course={self.course_id}>"


class CompletedTask(Base):
    """Flat completed-task set of a progress record."""

    __tablename__ = "progress_completed_tasks"

    progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("progress_records.id"), primary_key=True
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id"), primary_key=True, index=True
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    progress = relationship("ProgressRecord", back_populates="completed_tasks")

    def __repr__(self):
        return f"<CompletedTask Progress={self.progress_id} Task={self.task_id}>"


class TaskProgress(Base):
    """Submission / rating / review lifecycle of one task for one student."""

    __tablename__ = "task_progress"
    __table_args__ = (
        UniqueConstraint("progress_id", "task_id", name="uq_task_progress_progress_task"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("progress_records.id"), nullable=False, index=True
    )
    task_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tasks.id"), nullable=False, index=True
    )

    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Submission
    submitted_for_review: Mapped[bool] = mapped_column(Boolean, default=False)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Coach rating (1-5); rating, feedback and timestamp are written together
    coach_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    coach_feedback: Mapped[str] = mapped_column(Text, default="")
    coach_rated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Review
    reviewed: Mapped[bool] = mapped_column(Boolean, default=False)
    approval: Mapped[ApprovalStatus] = mapped_column(
        SAEnum(
            ApprovalStatus,
            name="approval_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ApprovalStatus.PENDING,
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    review_feedback: Mapped[str] = mapped_column(Text, default="")
    seen_by_student: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    progress = relationship("ProgressRecord", back_populates="task_progress")
    task = relationship("Task")
    uploads = relationship(
        "TaskUpload",
        back_populates="task_progress",
        cascade="all, delete-orphan",
        order_by="TaskUpload.position",
    )

    def __repr__(self):
        return f"<TaskProgress Progress={self.progress_id} Task={self.task_id}>"


class TaskUpload(Base):
    """Append-only list of files a student attached to a task."""

    __tablename__ = "task_uploads"
    __table_args__ = (
        UniqueConstraint(
            "task_progress_id", "position", name="uq_task_uploads_progress_position"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    task_progress_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("task_progress.id"), nullable=False, index=True
    )
    url: Mapped[str] = mapped_column(String, nullable=False)
    original_name: Mapped[str] = mapped_column(String, nullable=False)
    # Append order within the entry, starting at 0
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    task_progress = relationship("TaskProgress", back_populates="uploads")

    def __repr__(self):
        return f"<TaskUpload {self.original_name}>"
