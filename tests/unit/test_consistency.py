"""Unit tests for derived progress statistics and reference cleanup."""

from decimal import Decimal
from types import SimpleNamespace

import pytest
from services.learning_service.models import CompletedTask, TaskProgress
from services.learning_service.services import progress_ops
from services.learning_service.services.consistency import (
    average_rating,
    backfill_task_progress,
    completion_percentage,
    load_progress,
    pending_reviews,
    purge_task_references,
    recalculate_course_progress,
    renumber_positions,
    round_half_up,
)
from sqlalchemy import select
from tests.factories import TaskFactory, seed_course


def _entry(rating=None, submitted=False):
    return SimpleNamespace(coach_rating=rating, submitted_for_review=submitted)


# ---------------------------------------------------------------------------
# Pure derivations
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_round_half_up_rounds_ties_away_from_zero():
    assert round_half_up(2.5) == Decimal("3")
    assert round_half_up(Decimal("4.25"), 1) == Decimal("4.3")
    assert round_half_up(Decimal("4.24"), 1) == Decimal("4.2")


@pytest.mark.unit
@pytest.mark.parametrize(
    "completed,total,expected",
    [(1, 4, 25), (0, 0, 0), (3, 3, 100), (1, 3, 33), (2, 3, 67), (1, 8, 13)],
)
def test_completion_percentage(completed, total, expected):
    assert completion_percentage(completed, total) == expected


@pytest.mark.unit
def test_average_rating_ignores_unrated_entries():
    entries = [_entry(4), _entry(5), _entry(None)]
    assert average_rating(entries) == 4.5


@pytest.mark.unit
def test_average_rating_is_zero_without_ratings():
    assert average_rating([_entry(None), _entry(None)]) == 0.0
    assert average_rating([]) == 0.0


@pytest.mark.unit
def test_average_rating_one_decimal_half_up():
    # 4 + 4 + 5 + 4 = 17 / 4 = 4.25
    assert average_rating([_entry(4), _entry(4), _entry(5), _entry(4)]) == 4.3


@pytest.mark.unit
def test_pending_reviews_counts_submitted_unrated():
    entries = [_entry(None, True), _entry(3, True), _entry(None, False)]
    assert pending_reviews(entries) == 1


# ---------------------------------------------------------------------------
# Recalculation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_recalculate_tracks_catalog_growth(db_session):
    """Adding a task lowers completion without touching the completed set."""
    seeded = await seed_course(db_session, tasks=2)
    student = seeded["students"][0]
    course = seeded["course"]

    await progress_ops.complete_task(
        db_session,
        user_id=student.id,
        course_id=course.id,
        task_id=seeded["tasks"][0].id,
    )

    db_session.add(TaskFactory.create(skill_id=seeded["skills"][0].id, position=5))
    await db_session.flush()
    count = await recalculate_course_progress(db_session, course.id)
    await db_session.commit()

    progress = await load_progress(db_session, student.id, course.id)
    assert count == 1
    assert progress.completed_tasks_count == 1
    assert progress.total_tasks == 3
    assert completion_percentage(progress.completed_tasks_count, progress.total_tasks) == 33


@pytest.mark.asyncio
@pytest.mark.unit
async def test_purge_task_references_removes_completion_and_entry(db_session):
    seeded = await seed_course(db_session, tasks=2)
    student = seeded["students"][0]
    course = seeded["course"]
    task = seeded["tasks"][0]

    await progress_ops.complete_task(
        db_session, user_id=student.id, course_id=course.id, task_id=task.id
    )
    await purge_task_references(db_session, [task.id])
    await db_session.commit()

    progress = await load_progress(db_session, student.id, course.id)
    assert task.id not in progress.completed_task_ids
    assert progress.entry_for(task.id) is None


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_backfill_creates_missing_task_progress(db_session):
    """A completed task without an entry gets a completed entry."""
    seeded = await seed_course(db_session, tasks=2)
    student = seeded["students"][0]
    course = seeded["course"]
    task = seeded["tasks"][1]

    await progress_ops.complete_task(
        db_session,
        user_id=student.id,
        course_id=course.id,
        task_id=seeded["tasks"][0].id,
    )
    progress = await load_progress(db_session, student.id, course.id)
    # Legacy row: completed set only
    db_session.add(CompletedTask(progress_id=progress.id, task_id=task.id))
    await db_session.commit()

    changed = await backfill_task_progress(db_session)
    await db_session.commit()

    assert changed == 1
    result = await db_session.execute(
        select(TaskProgress).where(
            TaskProgress.progress_id == progress.id, TaskProgress.task_id == task.id
        )
    )
    entry = result.scalar_one()
    assert entry.completed is True

    # Second pass finds nothing to do
    assert await backfill_task_progress(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_renumber_positions_compacts_gaps(db_session):
    seeded = await seed_course(db_session, tasks=0, skills=2)
    first, second = seeded["skills"]
    first.position = 3
    second.position = 7
    db_session.add_all(
        [
            TaskFactory.create(skill_id=first.id, title="a", position=4),
            TaskFactory.create(skill_id=first.id, title="b", position=9),
        ]
    )
    await db_session.commit()

    moved = await renumber_positions(db_session)
    await db_session.commit()

    assert moved == 4
    assert (first.position, second.position) == (0, 1)
    assert await renumber_positions(db_session) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sync_progress_script_dry_run_then_apply(
    db_session, test_engine, monkeypatch
):
    from scripts.maintenance import sync_progress as script
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    monkeypatch.setattr(
        script,
        "AsyncSessionLocal",
        async_sessionmaker(
            bind=test_engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        ),
    )
    seeded = await seed_course(db_session, tasks=2)
    await progress_ops.complete_task(
        db_session,
        user_id=seeded["students"][0].id,
        course_id=seeded["course"].id,
        task_id=seeded["tasks"][0].id,
    )
    seeded["skills"][0].position = 5
    await db_session.commit()

    summary = await script.sync_progress(dry_run=True)
    assert summary["positions_moved"] == 1
    assert summary["records_recalculated"] == 1
    await db_session.refresh(seeded["skills"][0])
    assert seeded["skills"][0].position == 5

    await script.sync_progress(dry_run=False)
    await db_session.refresh(seeded["skills"][0])
    assert seeded["skills"][0].position == 0
    assert (await script.sync_progress(dry_run=True))["positions_moved"] == 0
