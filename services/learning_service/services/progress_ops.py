"""Progress record lifecycle: completion, submission, rating, review.

A record exists per (student, course). It is created lazily by the first
completion or submission and only disappears when its course is deleted.
Every mutation below loads the record ``FOR UPDATE``, applies the change,
re-derives the cached totals and commits once.
"""

import uuid
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailed,
)
from libs.common.logging import get_logger
from services.learning_service.models import (
    ApprovalStatus,
    Badge,
    CompletedTask,
    Course,
    ProgressRecord,
    Skill,
    Task,
    TaskProgress,
    TaskUpload,
    User,
)
from services.learning_service.services.badge_ops import evaluate_badges
from services.learning_service.services.consistency import (
    course_task_ids,
    load_progress,
    progress_load_options,
    refresh_derived_totals,
)
from services.learning_service.services.storage import StoredUpload
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_course(db: AsyncSession, course_id: uuid.UUID) -> Course:
    course = await db.get(Course, course_id)
    if not course:
        raise NotFoundError("Course not found")
    return course


async def _ensure_task_in_course(
    db: AsyncSession, course_id: uuid.UUID, task_id: uuid.UUID
) -> Task:
    result = await db.execute(
        select(Task)
        .join(Skill, Task.skill_id == Skill.id)
        .where(Task.id == task_id, Skill.course_id == course_id)
    )
    task = result.scalar_one_or_none()
    if not task:
        raise NotFoundError("Task not found in this course")
    return task


async def _ensure_course_coach(
    db: AsyncSession, coach_id: uuid.UUID, course_id: uuid.UUID
) -> Course:
    course = await _get_course(db, course_id)
    if course.coach_id != coach_id:
        raise UnauthorizedError("Not authorized to manage progress in this course")
    return course


async def _get_or_create_progress(
    db: AsyncSession, user_id: uuid.UUID, course_id: uuid.UUID
) -> ProgressRecord:
    progress = await load_progress(db, user_id, course_id, for_update=True)
    if progress:
        return progress

    progress = ProgressRecord(
        user_id=user_id,
        course_id=course_id,
        completed_tasks=[],
        task_progress=[],
    )
    db.add(progress)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Another request created the record between our read and insert.
        await db.rollback()
        raise ConflictError("Progress record already exists") from exc
    return progress


def _ensure_entry(progress: ProgressRecord, task_id: uuid.UUID) -> TaskProgress:
    entry = progress.entry_for(task_id)
    if entry is None:
        entry = TaskProgress(task_id=task_id, uploads=[])
        progress.task_progress.append(entry)
    return entry


def _mark_completed(progress: ProgressRecord, task_id: uuid.UUID) -> bool:
    """Add ``task_id`` to the completed set and its entry. Idempotent.

    Returns True if the completed set changed.
    """
    now = utc_now()
    entry = _ensure_entry(progress, task_id)
    if not entry.completed:
        entry.completed = True
        entry.completed_at = now

    if task_id in progress.completed_task_ids:
        return False
    progress.completed_tasks.append(CompletedTask(task_id=task_id, completed_at=now))
    return True


async def _commit_progress(db: AsyncSession, progress: ProgressRecord) -> ProgressRecord:
    progress.last_activity = utc_now()
    await refresh_derived_totals(db, progress)
    await db.commit()
    return progress


# ---------------------------------------------------------------------------
# Student operations
# ---------------------------------------------------------------------------


async def complete_task(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
    task_id: uuid.UUID,
) -> tuple[ProgressRecord, list[Badge]]:
    """Mark a task completed and evaluate badge thresholds.

    Returns ``(progress, newly_granted_badges)``.
    """
    await _get_course(db, course_id)
    await _ensure_task_in_course(db, course_id, task_id)

    progress = await _get_or_create_progress(db, user_id, course_id)
    changed = _mark_completed(progress, task_id)
    await _commit_progress(db, progress)

    if changed:
        logger.info(
            "User %s completed task %s in course %s (%d/%d)",
            user_id,
            task_id,
            course_id,
            progress.completed_tasks_count,
            progress.total_tasks,
        )

    new_badges = await evaluate_badges(db, user_id)
    return progress, new_badges


async def submit_task(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
    task_id: uuid.UUID,
    uploads: list[StoredUpload],
) -> ProgressRecord:
    """Attach uploaded files to a task and flag it for coach review.

    Submission does not complete the task.
    """
    if not uploads:
        raise ValidationFailed("At least one file is required.")
    max_files = get_settings().MAX_UPLOAD_FILES
    if len(uploads) > max_files:
        raise ValidationFailed(f"At most {max_files} files may be submitted at once.")

    await _get_course(db, course_id)
    await _ensure_task_in_course(db, course_id, task_id)

    progress = await _get_or_create_progress(db, user_id, course_id)
    entry = _ensure_entry(progress, task_id)

    now = utc_now()
    start = len(entry.uploads)
    for offset, upload in enumerate(uploads):
        entry.uploads.append(
            TaskUpload(
                url=upload.url,
                original_name=upload.original_name,
                position=start + offset,
                uploaded_at=now,
            )
        )
    entry.submitted_for_review = True
    entry.submitted_at = now

    await _commit_progress(db, progress)
    logger.info(
        "User %s submitted %d file(s) for task %s", user_id, len(uploads), task_id
    )
    return progress


async def mark_seen(
    db: AsyncSession, *, user_id: uuid.UUID, course_id: uuid.UUID
) -> int:
    """Acknowledge reviewed feedback. Returns how many entries changed."""
    progress = await load_progress(db, user_id, course_id, for_update=True)
    if not progress:
        raise NotFoundError("Progress not found")

    changed = 0
    for entry in progress.task_progress:
        if entry.reviewed and not entry.seen_by_student:
            entry.seen_by_student = True
            changed += 1

    if changed:
        await _commit_progress(db, progress)
    return changed


async def get_progress(
    db: AsyncSession, *, user_id: uuid.UUID, course_id: uuid.UUID
) -> Optional[ProgressRecord]:
    """Read a record, re-deriving its totals against the current catalog.

    Returns None when the student has not interacted with the course yet.
    """
    progress = await load_progress(db, user_id, course_id, for_update=True)
    if not progress:
        return None
    await refresh_derived_totals(db, progress)
    await db.commit()
    return progress


# ---------------------------------------------------------------------------
# Coach operations
# ---------------------------------------------------------------------------


async def _load_entry_for_coach(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    course_id: uuid.UUID,
    student_id: uuid.UUID,
    task_id: uuid.UUID,
) -> tuple[ProgressRecord, TaskProgress]:
    await _ensure_course_coach(db, coach_id, course_id)
    progress = await load_progress(db, student_id, course_id, for_update=True)
    if not progress:
        raise NotFoundError("Student progress not found")
    entry = progress.entry_for(task_id)
    if entry is None:
        raise NotFoundError("Task progress not found")
    return progress, entry


async def rate_task(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    course_id: uuid.UUID,
    student_id: uuid.UUID,
    task_id: uuid.UUID,
    rating: Optional[int],
    feedback: Optional[str] = None,
) -> TaskProgress:
    """Record the owning coach's rating of a student's task."""
    await _ensure_course_coach(db, coach_id, course_id)
    if rating is None or not (MIN_RATING <= rating <= MAX_RATING):
        raise ValidationFailed(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}"
        )

    progress, entry = await _load_entry_for_coach(
        db,
        coach_id=coach_id,
        course_id=course_id,
        student_id=student_id,
        task_id=task_id,
    )
    entry.coach_rating = rating
    entry.coach_feedback = feedback or ""
    entry.coach_rated_at = utc_now()
    entry.submitted_for_review = False

    await _commit_progress(db, progress)
    logger.info(
        "Coach %s rated task %s of student %s: %d (avg %.1f)",
        coach_id,
        task_id,
        student_id,
        rating,
        progress.average_rating,
    )
    return entry


async def review_task(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    course_id: uuid.UUID,
    student_id: uuid.UUID,
    task_id: uuid.UUID,
    approved: bool,
    feedback: Optional[str] = None,
) -> TaskProgress:
    """Approve or reject a submission. Approval also completes the task."""
    progress, entry = await _load_entry_for_coach(
        db,
        coach_id=coach_id,
        course_id=course_id,
        student_id=student_id,
        task_id=task_id,
    )
    entry.reviewed = True
    entry.approval = ApprovalStatus.APPROVED if approved else ApprovalStatus.REJECTED
    entry.reviewed_at = utc_now()
    entry.review_feedback = feedback or ""
    entry.seen_by_student = False
    entry.submitted_for_review = False

    if approved:
        _mark_completed(progress, task_id)

    await _commit_progress(db, progress)
    logger.info(
        "Coach %s %s task %s of student %s",
        coach_id,
        entry.approval.value,
        task_id,
        student_id,
    )
    if approved:
        await evaluate_badges(db, student_id)
    return entry


async def list_submissions(
    db: AsyncSession, *, coach_id: uuid.UUID, course_id: uuid.UUID
) -> list[ProgressRecord]:
    """Every progress record of the course, for the owning coach."""
    await _ensure_course_coach(db, coach_id, course_id)
    task_ids = await course_task_ids(db, course_id)
    result = await db.execute(
        select(ProgressRecord)
        .where(ProgressRecord.course_id == course_id)
        .options(
            *progress_load_options(),
            selectinload(ProgressRecord.user),
            selectinload(ProgressRecord.task_progress).selectinload(TaskProgress.task),
        )
        .execution_options(populate_existing=True)
    )
    records = list(result.scalars().all())
    for progress in records:
        await refresh_derived_totals(db, progress, task_ids=task_ids)
    await db.commit()
    return records


async def student_task_overview(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    course_id: uuid.UUID,
    student_id: uuid.UUID,
) -> tuple[list[tuple[Task, Skill, Optional[TaskProgress]]], Optional[ProgressRecord]]:
    """Pair every task of the course with the student's entry for it."""
    await _ensure_course_coach(db, coach_id, course_id)
    student = await db.get(User, student_id)
    if not student:
        raise NotFoundError("Student not found")

    result = await db.execute(
        select(Skill)
        .where(Skill.course_id == course_id)
        .options(selectinload(Skill.tasks))
        .order_by(Skill.position)
        .execution_options(populate_existing=True)
    )
    skills = result.scalars().all()

    progress = await load_progress(db, student_id, course_id)
    if progress:
        await refresh_derived_totals(db, progress)
        await db.commit()

    rows = []
    for skill in skills:
        for task in skill.tasks:
            entry = progress.entry_for(task.id) if progress else None
            rows.append((task, skill, entry))
    return rows, progress
