"""Course, skill and task management plus enrollment.

Every catalog mutation that changes which tasks a course contains ends with
``recalculate_course_progress`` in the same transaction, and every delete
purges task references from progress records before removing rows.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from libs.common.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailed,
)
from libs.common.logging import get_logger
from services.learning_service.models import (
    Course,
    ProgressRecord,
    Skill,
    Task,
    TaskContentType,
    TaskProgress,
    User,
    UserRole,
    course_enrollments,
)
from services.learning_service.services.consistency import (
    completion_percentage,
    course_task_ids,
    delete_progress_records,
    pending_reviews,
    progress_load_options,
    purge_task_references,
    recalculate_course_progress,
    refresh_derived_totals,
    round_half_up,
)
from services.learning_service.services.storage import (
    StorageService,
    StoredUpload,
    discard_files,
)
from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def content_type_for(mime_type: str) -> TaskContentType:
    """Task content tag derived from the MIME type of its first file."""
    if mime_type.startswith("video/"):
        return TaskContentType.VIDEO
    if mime_type == "application/pdf":
        return TaskContentType.PDF
    return TaskContentType.TEXT


def _course_tree_options() -> list:
    return [selectinload(Course.skills).selectinload(Skill.tasks)]


async def _get_course(db: AsyncSession, course_id: uuid.UUID, *options) -> Course:
    result = await db.execute(
        select(Course)
        .where(Course.id == course_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    course = result.scalar_one_or_none()
    if not course:
        raise NotFoundError("Course not found")
    return course


async def _get_owned_course(
    db: AsyncSession, coach_id: uuid.UUID, course_id: uuid.UUID, *options
) -> Course:
    course = await _get_course(db, course_id, *options)
    if course.coach_id != coach_id:
        raise UnauthorizedError("Not authorized to manage this course")
    return course


async def _get_owned_skill(
    db: AsyncSession, coach_id: uuid.UUID, skill_id: uuid.UUID
) -> Skill:
    result = await db.execute(
        select(Skill)
        .where(Skill.id == skill_id)
        .options(selectinload(Skill.course), selectinload(Skill.tasks))
        .execution_options(populate_existing=True)
    )
    skill = result.scalar_one_or_none()
    if not skill:
        raise NotFoundError("Skill not found")
    if skill.course.coach_id != coach_id:
        raise UnauthorizedError("Not authorized to manage this skill")
    return skill


async def _get_owned_task(
    db: AsyncSession, coach_id: uuid.UUID, task_id: uuid.UUID
) -> Task:
    result = await db.execute(
        select(Task)
        .where(Task.id == task_id)
        .options(selectinload(Task.skill).selectinload(Skill.course))
        .execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if not task:
        raise NotFoundError("Task not found")
    if task.skill.course.coach_id != coach_id:
        raise UnauthorizedError("Not authorized to manage this task")
    return task


async def _is_enrolled(
    db: AsyncSession, user_id: uuid.UUID, course_id: uuid.UUID
) -> bool:
    result = await db.execute(
        select(course_enrollments.c.user_id).where(
            course_enrollments.c.user_id == user_id,
            course_enrollments.c.course_id == course_id,
        )
    )
    return result.first() is not None


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------


async def create_course(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    name: str,
    description: Optional[str] = None,
) -> Course:
    course = Course(name=name, description=description, coach_id=coach_id)
    db.add(course)
    await db.commit()
    await db.refresh(course)
    logger.info("Coach %s created course %s (%s)", coach_id, course.name, course.id)
    return course


async def update_course(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    course_id: uuid.UUID,
    updates: dict[str, Any],
) -> Course:
    course = await _get_owned_course(db, coach_id, course_id)
    for field, value in updates.items():
        if value:
            setattr(course, field, value)
    await db.commit()
    await db.refresh(course)
    return course


async def delete_course(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    course_id: uuid.UUID,
    storage: Optional[StorageService] = None,
) -> None:
    """Delete a course with its enrollments, skills, tasks and progress."""
    course = await _get_owned_course(db, coach_id, course_id, *_course_tree_options())

    tasks = [task for skill in course.skills for task in skill.tasks]
    task_ids = [task.id for task in tasks]
    locations = [url for task in tasks for url in task.content_urls or []]

    await db.execute(
        delete(course_enrollments).where(course_enrollments.c.course_id == course_id)
    )
    await delete_progress_records(db, course_id)
    await purge_task_references(db, task_ids)
    if task_ids:
        await db.execute(delete(Task).where(Task.id.in_(task_ids)))
    await db.execute(delete(Skill).where(Skill.course_id == course_id))
    await db.execute(delete(Course).where(Course.id == course_id))
    await db.commit()

    logger.info(
        "Coach %s deleted course %s with %d skills and %d tasks",
        coach_id,
        course_id,
        len(course.skills),
        len(task_ids),
    )
    await discard_files(storage, locations)


async def list_all_courses(db: AsyncSession) -> list[Course]:
    result = await db.execute(
        select(Course)
        .options(selectinload(Course.coach))
        .order_by(Course.created_at)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def list_coach_courses(
    db: AsyncSession, coach_id: uuid.UUID
) -> list[tuple[Course, int]]:
    """Courses owned by the coach with their student counts (coaches excluded)."""
    result = await db.execute(
        select(Course)
        .where(Course.coach_id == coach_id)
        .options(*_course_tree_options(), selectinload(Course.students))
        .execution_options(populate_existing=True)
        .order_by(Course.created_at)
    )
    courses = result.scalars().all()
    return [
        (course, sum(1 for s in course.students if s.role != UserRole.COACH))
        for course in courses
    ]


async def list_enrolled_courses(db: AsyncSession, user_id: uuid.UUID) -> list[Course]:
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .options(
            selectinload(User.enrolled_courses)
            .selectinload(Course.skills)
            .selectinload(Skill.tasks)
        )
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User not found")
    return list(user.enrolled_courses)


async def get_course(
    db: AsyncSession, *, user_id: uuid.UUID, course_id: uuid.UUID
) -> Course:
    """A course with its skills and tasks, for its coach or enrolled users."""
    course = await _get_course(db, course_id, *_course_tree_options())
    if course.coach_id != user_id and not await _is_enrolled(db, user_id, course_id):
        raise UnauthorizedError("You must be enrolled in this course to view it")
    return course


async def enroll(db: AsyncSession, *, user_id: uuid.UUID, course_id: uuid.UUID) -> None:
    course = await _get_course(db, course_id)
    if not await db.get(User, user_id):
        raise NotFoundError("User not found")
    if course.coach_id == user_id:
        raise ValidationFailed("Coach cannot enroll as a student in their own course")
    if await _is_enrolled(db, user_id, course_id):
        raise ConflictError("Already enrolled in this course")

    await db.execute(
        insert(course_enrollments).values(course_id=course_id, user_id=user_id)
    )
    await db.commit()
    logger.info("User %s enrolled in course %s", user_id, course_id)


async def unenroll(
    db: AsyncSession, *, user_id: uuid.UUID, course_id: uuid.UUID
) -> None:
    await _get_course(db, course_id)
    await db.execute(
        delete(course_enrollments).where(
            course_enrollments.c.course_id == course_id,
            course_enrollments.c.user_id == user_id,
        )
    )
    await db.commit()
    logger.info("User %s unenrolled from course %s", user_id, course_id)


# ---------------------------------------------------------------------------
# Skills
# ---------------------------------------------------------------------------


async def list_skills(
    db: AsyncSession, course_id: Optional[uuid.UUID] = None
) -> list[Skill]:
    query = (
        select(Skill)
        .options(selectinload(Skill.tasks))
        .execution_options(populate_existing=True)
    )
    if course_id:
        query = query.where(Skill.course_id == course_id)
    result = await db.execute(query.order_by(Skill.course_id, Skill.position))
    return list(result.scalars().all())


async def create_skill(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    course_id: uuid.UUID,
    title: str,
    description: str,
) -> Skill:
    if not title or not description:
        raise ValidationFailed("Missing required fields: title, description, courseId")
    await _get_owned_course(db, coach_id, course_id)

    position = await db.scalar(
        select(func.coalesce(func.max(Skill.position) + 1, 0)).where(
            Skill.course_id == course_id
        )
    )
    skill = Skill(
        course_id=course_id, title=title, description=description, position=position
    )
    db.add(skill)
    await db.commit()
    await db.refresh(skill, attribute_names=["tasks"])
    logger.info("Added skill %s to course %s", skill.id, course_id)
    return skill


async def update_skill(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    skill_id: uuid.UUID,
    updates: dict[str, Any],
) -> Skill:
    skill = await _get_owned_skill(db, coach_id, skill_id)
    for field, value in updates.items():
        if value:
            setattr(skill, field, value)
    await db.commit()
    return skill


async def delete_skill(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    skill_id: uuid.UUID,
    storage: Optional[StorageService] = None,
) -> None:
    """Delete a skill and its tasks, purging them from every progress record."""
    skill = await _get_owned_skill(db, coach_id, skill_id)
    course_id = skill.course_id
    task_ids = [task.id for task in skill.tasks]
    locations = [url for task in skill.tasks for url in task.content_urls or []]

    await purge_task_references(db, task_ids)
    if task_ids:
        await db.execute(delete(Task).where(Task.id.in_(task_ids)))
    await db.execute(delete(Skill).where(Skill.id == skill_id))
    await recalculate_course_progress(db, course_id)
    await db.commit()

    logger.info("Deleted skill %s with %d tasks", skill_id, len(task_ids))
    await discard_files(storage, locations)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


async def create_task(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    skill_id: uuid.UUID,
    title: str,
    files: list[StoredUpload],
    deadline: Optional[datetime] = None,
) -> Task:
    if not files:
        raise ValidationFailed("At least one task content file is required.")
    if not title:
        raise ValidationFailed("Task title is required.")

    skill = await _get_owned_skill(db, coach_id, skill_id)
    position = max((t.position for t in skill.tasks), default=-1) + 1
    task = Task(
        skill_id=skill_id,
        title=title,
        content_type=content_type_for(files[0].content_type),
        content_urls=[f.url for f in files],
        deadline=deadline,
        position=position,
    )
    db.add(task)
    await db.flush()
    await recalculate_course_progress(db, skill.course_id)
    await db.commit()
    await db.refresh(task)

    logger.info(
        "Added %s task %s to skill %s (%d files)",
        task.content_type.value,
        task.id,
        skill_id,
        len(files),
    )
    return task


async def update_task(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    task_id: uuid.UUID,
    updates: dict[str, Any],
) -> Task:
    """Apply a partial update. An explicit null deadline clears it."""
    task = await _get_owned_task(db, coach_id, task_id)
    if updates.get("title"):
        task.title = updates["title"]
    if "deadline" in updates:
        task.deadline = updates["deadline"]
    await db.commit()
    await db.refresh(task)
    return task


async def delete_task(
    db: AsyncSession,
    *,
    coach_id: uuid.UUID,
    task_id: uuid.UUID,
    storage: Optional[StorageService] = None,
) -> None:
    """Delete a task and every progress reference to it."""
    task = await _get_owned_task(db, coach_id, task_id)
    course_id = task.skill.course_id
    locations = list(task.content_urls or [])

    await purge_task_references(db, [task_id])
    await db.execute(delete(Task).where(Task.id == task_id))
    await recalculate_course_progress(db, course_id)
    await db.commit()

    logger.info("Deleted task %s from course %s", task_id, course_id)
    await discard_files(storage, locations)


async def task_titles(db: AsyncSession, task_ids: list[uuid.UUID]) -> dict[str, str]:
    if not task_ids:
        raise ValidationFailed("No task IDs provided")
    result = await db.execute(select(Task.id, Task.title).where(Task.id.in_(task_ids)))
    return {str(task_id): title for task_id, title in result.all()}


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


async def course_dashboard(
    db: AsyncSession, *, coach_id: uuid.UUID, course_id: uuid.UUID
) -> dict[str, Any]:
    """Per-student progress and aggregate statistics for the owning coach."""
    course = await _get_owned_course(
        db,
        coach_id,
        course_id,
        *_course_tree_options(),
        selectinload(Course.students),
    )
    task_ids = await course_task_ids(db, course_id)
    total_tasks = len(task_ids)

    result = await db.execute(
        select(ProgressRecord)
        .where(ProgressRecord.course_id == course_id)
        .options(
            *progress_load_options(),
            selectinload(ProgressRecord.task_progress).selectinload(TaskProgress.task),
        )
        .execution_options(populate_existing=True)
    )
    by_user = {p.user_id: p for p in result.scalars().all()}
    for progress in by_user.values():
        await refresh_derived_totals(db, progress, task_ids=task_ids)
    await db.commit()

    students = [s for s in course.students if s.role != UserRole.COACH]
    rows = []
    for student in students:
        progress = by_user.get(student.id)
        if progress is None:
            summary = {
                "completed_tasks": 0,
                "total_tasks": total_tasks,
                "completion_percentage": 0,
                "average_rating": 0.0,
                "last_activity": None,
                "pending_reviews": 0,
                "task_progress": [],
            }
        else:
            summary = {
                "completed_tasks": progress.completed_tasks_count,
                "total_tasks": progress.total_tasks,
                "completion_percentage": completion_percentage(
                    progress.completed_tasks_count, progress.total_tasks
                ),
                "average_rating": progress.average_rating,
                "last_activity": progress.last_activity,
                "pending_reviews": pending_reviews(progress.task_progress),
                "task_progress": list(progress.task_progress),
            }
        rows.append(
            {
                "id": student.id,
                "name": student.name,
                "email": student.email,
                "progress": summary,
            }
        )

    count = len(rows)
    stats = {
        "total_students": count,
        "total_tasks": total_tasks,
        "average_completion": 0,
        "average_rating": 0.0,
        "pending_reviews": sum(r["progress"]["pending_reviews"] for r in rows),
    }
    if count:
        completion_sum = sum(r["progress"]["completion_percentage"] for r in rows)
        rating_sum = sum(
            Decimal(str(r["progress"]["average_rating"])) for r in rows
        )
        stats["average_completion"] = int(round_half_up(Decimal(completion_sum) / count))
        stats["average_rating"] = float(round_half_up(rating_sum / count, 1))

    return {"course": course, "skills": list(course.skills), "students": rows, "stats": stats}
