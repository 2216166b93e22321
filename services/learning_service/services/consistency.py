"""Derived progress statistics and reference cleanup.

Progress records cache ``completed_tasks_count``, ``total_tasks`` and
``average_rating``. Those values are only ever written by
:func:`refresh_derived_totals`, which recomputes them from scratch against the
live catalog. It runs on every read and every write of a record, and
:func:`recalculate_course_progress` re-runs it for a whole course after any
catalog change.

Deleting catalog entries goes through :func:`purge_task_references` first so
no completed-task row or task-progress entry is left pointing at a task that
no longer exists.
"""

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from libs.common.logging import get_logger
from services.learning_service.models import (
    CompletedTask,
    ProgressRecord,
    Skill,
    Task,
    TaskProgress,
    TaskUpload,
)
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Pure derivations
# ---------------------------------------------------------------------------


def round_half_up(value, digits: int = 0) -> Decimal:
    """Round away from zero on ties, unlike the builtin banker's rounding."""
    exponent = Decimal(1).scaleb(-digits)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def completion_percentage(completed: int, total: int) -> int:
    """Whole-number completion, 0 when the course has no tasks."""
    if total == 0:
        return 0
    return int(round_half_up(Decimal(completed) * 100 / Decimal(total)))


def average_rating(entries: Iterable[TaskProgress]) -> float:
    """Mean coach rating over rated entries, one decimal place, 0 if none."""
    ratings = [e.coach_rating for e in entries if e.coach_rating is not None]
    if not ratings:
        return 0.0
    return float(round_half_up(Decimal(sum(ratings)) / Decimal(len(ratings)), 1))


def pending_reviews(entries: Iterable[TaskProgress]) -> int:
    """Submitted entries still waiting for a coach rating."""
    return sum(
        1 for e in entries if e.submitted_for_review and e.coach_rating is None
    )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def progress_load_options() -> list:
    """Eager-load everything the derivations and responses read."""
    return [
        selectinload(ProgressRecord.completed_tasks),
        selectinload(ProgressRecord.task_progress).selectinload(TaskProgress.uploads),
    ]


async def load_progress(
    db: AsyncSession,
    user_id: uuid.UUID,
    course_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> Optional[ProgressRecord]:
    """Fetch the (user, course) record with its collections freshly loaded."""
    query = (
        select(ProgressRecord)
        .where(
            ProgressRecord.user_id == user_id,
            ProgressRecord.course_id == course_id,
        )
        .options(*progress_load_options())
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def course_task_ids(db: AsyncSession, course_id: uuid.UUID) -> set[uuid.UUID]:
    """Union of the tasks of every skill currently in the course."""
    result = await db.execute(
        select(Task.id)
        .join(Skill, Task.skill_id == Skill.id)
        .where(Skill.course_id == course_id)
    )
    return set(result.scalars().all())


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------


async def refresh_derived_totals(
    db: AsyncSession,
    progress: ProgressRecord,
    *,
    task_ids: Optional[set[uuid.UUID]] = None,
) -> ProgressRecord:
    """Recompute every cached total of ``progress`` in place.

    ``task_ids`` may be passed when the caller already enumerated the
    course's tasks (bulk recalculation); otherwise the catalog is queried.
    The record's collections must be loaded.
    """
    if task_ids is None:
        task_ids = await course_task_ids(db, progress.course_id)

    progress.completed_tasks_count = len(progress.completed_tasks)
    progress.total_tasks = len(task_ids)
    progress.average_rating = average_rating(progress.task_progress)
    return progress


async def recalculate_course_progress(db: AsyncSession, course_id: uuid.UUID) -> int:
    """Refresh every progress record of a course. Returns how many."""
    task_ids = await course_task_ids(db, course_id)
    result = await db.execute(
        select(ProgressRecord)
        .where(ProgressRecord.course_id == course_id)
        .options(*progress_load_options())
        .execution_options(populate_existing=True)
    )
    records = result.scalars().all()
    for progress in records:
        await refresh_derived_totals(db, progress, task_ids=task_ids)
    logger.info(
        "Recalculated %d progress records for course %s (%d tasks)",
        len(records),
        course_id,
        len(task_ids),
    )
    return len(records)


# ---------------------------------------------------------------------------
# Reference cleanup
# ---------------------------------------------------------------------------


async def purge_task_references(db: AsyncSession, task_ids: Iterable[uuid.UUID]) -> None:
    """Remove the given tasks from every progress record that mentions them."""
    task_ids = list(task_ids)
    if not task_ids:
        return

    entry_ids = select(TaskProgress.id).where(TaskProgress.task_id.in_(task_ids))
    await db.execute(delete(TaskUpload).where(TaskUpload.task_progress_id.in_(entry_ids)))
    await db.execute(delete(TaskProgress).where(TaskProgress.task_id.in_(task_ids)))
    await db.execute(delete(CompletedTask).where(CompletedTask.task_id.in_(task_ids)))


async def delete_progress_records(db: AsyncSession, course_id: uuid.UUID) -> None:
    """Drop every progress record of a course together with its children."""
    record_ids = select(ProgressRecord.id).where(ProgressRecord.course_id == course_id)
    entry_ids = select(TaskProgress.id).where(TaskProgress.progress_id.in_(record_ids))
    await db.execute(delete(TaskUpload).where(TaskUpload.task_progress_id.in_(entry_ids)))
    await db.execute(delete(TaskProgress).where(TaskProgress.progress_id.in_(record_ids)))
    await db.execute(
        delete(CompletedTask).where(CompletedTask.progress_id.in_(record_ids))
    )
    await db.execute(delete(ProgressRecord).where(ProgressRecord.course_id == course_id))


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


async def renumber_positions(db: AsyncSession) -> int:
    """Compact skill and task positions to 0..n-1 in their current order.

    Returns how many rows moved.
    """
    moved = 0
    result = await db.execute(
        select(Skill)
        .options(selectinload(Skill.tasks))
        .order_by(Skill.course_id, Skill.position, Skill.created_at)
    )
    positions: dict[uuid.UUID, int] = {}
    for skill in result.scalars().all():
        expected = positions.get(skill.course_id, 0)
        positions[skill.course_id] = expected + 1
        if skill.position != expected:
            skill.position = expected
            moved += 1
        tasks = sorted(skill.tasks, key=lambda t: (t.position, t.created_at))
        for index, task in enumerate(tasks):
            if task.position != index:
                task.position = index
                moved += 1
    return moved


async def backfill_task_progress(db: AsyncSession) -> int:
    """Give every completed task a completed task-progress entry.

    Returns how many records changed.
    """
    result = await db.execute(
        select(ProgressRecord)
        .options(*progress_load_options())
        .execution_options(populate_existing=True)
    )
    changed_records = 0
    for progress in result.scalars().all():
        changed = False
        for row in progress.completed_tasks:
            entry = progress.entry_for(row.task_id)
            if entry is None:
                progress.task_progress.append(
                    TaskProgress(
                        task_id=row.task_id,
                        completed=True,
                        completed_at=row.completed_at,
                        uploads=[],
                    )
                )
                changed = True
            elif not entry.completed:
                entry.completed = True
                entry.completed_at = entry.completed_at or row.completed_at
                changed = True
        if changed:
            changed_records += 1
            logger.info(
                "Backfilled task progress for user %s in course %s",
                progress.user_id,
                progress.course_id,
            )
    return changed_records
