"""Unit tests for catalog_ops: course tree mutations and cascades."""

import uuid

import pytest
from libs.common.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailed,
)
from services.learning_service.models import (
    CompletedTask,
    Course,
    ProgressRecord,
    Skill,
    Task,
    TaskContentType,
    TaskProgress,
    TaskUpload,
    course_enrollments,
)
from services.learning_service.services import catalog_ops, progress_ops
from services.learning_service.services.catalog_ops import content_type_for
from services.learning_service.services.consistency import load_progress
from services.learning_service.services.storage import StoredUpload
from sqlalchemy import func, select
from tests.factories import CoachFactory, UserFactory, seed_course


async def _count(db, model_or_table, *where):
    query = select(func.count()).select_from(model_or_table)
    if where:
        query = query.where(*where)
    return (await db.execute(query)).scalar_one()


# ---------------------------------------------------------------------------
# Content type
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "mime,expected",
    [
        ("video/mp4", TaskContentType.VIDEO),
        ("application/pdf", TaskContentType.PDF),
        ("text/plain", TaskContentType.TEXT),
        ("image/png", TaskContentType.TEXT),
    ],
)
def test_content_type_for(mime, expected):
    assert content_type_for(mime) == expected


# ---------------------------------------------------------------------------
# Courses and enrollment
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_course_requires_owner(db_session):
    seeded = await seed_course(db_session, tasks=0)

    with pytest.raises(UnauthorizedError):
        await catalog_ops.update_course(
            db_session,
            coach_id=uuid.uuid4(),
            course_id=seeded["course"].id,
            updates={"name": "Hijacked"},
        )

    course = await catalog_ops.update_course(
        db_session,
        coach_id=seeded["coach"].id,
        course_id=seeded["course"].id,
        updates={"name": "Backhand", "description": None},
    )
    assert course.name == "Backhand"
    assert course.description == "Grip, stance and swing."


@pytest.mark.asyncio
@pytest.mark.unit
async def test_enroll_rules(db_session):
    seeded = await seed_course(db_session, tasks=0, students=0)
    course = seeded["course"]
    student = UserFactory.create()
    db_session.add(student)
    await db_session.commit()

    await catalog_ops.enroll(db_session, user_id=student.id, course_id=course.id)

    with pytest.raises(ConflictError):
        await catalog_ops.enroll(db_session, user_id=student.id, course_id=course.id)
    with pytest.raises(ValidationFailed):
        await catalog_ops.enroll(
            db_session, user_id=seeded["coach"].id, course_id=course.id
        )
    with pytest.raises(NotFoundError):
        await catalog_ops.enroll(db_session, user_id=student.id, course_id=uuid.uuid4())

    courses = await catalog_ops.list_enrolled_courses(db_session, student.id)
    assert [c.id for c in courses] == [course.id]

    await catalog_ops.unenroll(db_session, user_id=student.id, course_id=course.id)
    assert await catalog_ops.list_enrolled_courses(db_session, student.id) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_get_course_visible_to_owner_and_enrolled_only(db_session):
    seeded = await seed_course(db_session, tasks=2)
    course_id = seeded["course"].id
    outsider = UserFactory.create()
    db_session.add(outsider)
    await db_session.commit()

    owned = await catalog_ops.get_course(
        db_session, user_id=seeded["coach"].id, course_id=course_id
    )
    assert len(owned.skills[0].tasks) == 2
    await catalog_ops.get_course(
        db_session, user_id=seeded["students"][0].id, course_id=course_id
    )
    with pytest.raises(UnauthorizedError):
        await catalog_ops.get_course(db_session, user_id=outsider.id, course_id=course_id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_coach_course_student_count_excludes_coaches(db_session):
    seeded = await seed_course(db_session, tasks=0, students=2)
    other_coach = CoachFactory.create()
    db_session.add(other_coach)
    await db_session.commit()
    await catalog_ops.enroll(
        db_session, user_id=other_coach.id, course_id=seeded["course"].id
    )

    rows = await catalog_ops.list_coach_courses(db_session, seeded["coach"].id)

    assert [(c.id, n) for c, n in rows] == [(seeded["course"].id, 2)]


# ---------------------------------------------------------------------------
# Skills and tasks
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_skill_appends_position(db_session):
    seeded = await seed_course(db_session, tasks=0, skills=2)

    skill = await catalog_ops.create_skill(
        db_session,
        coach_id=seeded["coach"].id,
        course_id=seeded["course"].id,
        title="Footwork",
        description="Move your feet.",
    )

    assert skill.position == 2
    assert skill.tasks == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_skill_requires_fields(db_session):
    seeded = await seed_course(db_session, tasks=0)

    with pytest.raises(ValidationFailed):
        await catalog_ops.create_skill(
            db_session,
            coach_id=seeded["coach"].id,
            course_id=seeded["course"].id,
            title="",
            description="x",
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_skills_filters_by_course(db_session):
    seeded = await seed_course(db_session, tasks=2, skills=2)
    other = await seed_course(db_session, tasks=0, skills=1, students=0)

    skills = await catalog_ops.list_skills(db_session, seeded["course"].id)

    assert [s.title for s in skills] == ["Skill 0", "Skill 1"]
    assert [len(s.tasks) for s in skills] == [1, 1]
    assert len(await catalog_ops.list_skills(db_session)) == 3
    assert len(await catalog_ops.list_skills(db_session, other["course"].id)) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_skill_skips_empty_values(db_session):
    seeded = await seed_course(db_session, tasks=0)
    skill = seeded["skills"][0]
    original_description = skill.description

    updated = await catalog_ops.update_skill(
        db_session,
        coach_id=seeded["coach"].id,
        skill_id=skill.id,
        updates={"title": "Serve", "description": ""},
    )

    assert updated.title == "Serve"
    assert updated.description == original_description

    stranger = CoachFactory.create()
    db_session.add(stranger)
    await db_session.commit()
    with pytest.raises(UnauthorizedError):
        await catalog_ops.update_skill(
            db_session,
            coach_id=stranger.id,
            skill_id=skill.id,
            updates={"title": "Hijack"},
        )
    with pytest.raises(NotFoundError):
        await catalog_ops.update_skill(
            db_session,
            coach_id=seeded["coach"].id,
            skill_id=uuid.uuid4(),
            updates={"title": "Ghost"},
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_task_refreshes_progress_totals(db_session):
    seeded = await seed_course(db_session, tasks=1)
    student = seeded["students"][0]
    course = seeded["course"]
    await progress_ops.complete_task(
        db_session, user_id=student.id, course_id=course.id, task_id=seeded["tasks"][0].id
    )

    task = await catalog_ops.create_task(
        db_session,
        coach_id=seeded["coach"].id,
        skill_id=seeded["skills"][0].id,
        title="Shadow swings",
        files=[
            StoredUpload(
                url="uploads/a.pdf", original_name="a.pdf", content_type="application/pdf"
            ),
            StoredUpload(url="uploads/b.mp4", original_name="b.mp4", content_type="video/mp4"),
        ],
    )

    assert task.content_type == TaskContentType.PDF
    assert task.content_urls == ["uploads/a.pdf", "uploads/b.mp4"]
    assert task.position == 1
    progress = await load_progress(db_session, student.id, course.id)
    assert (progress.completed_tasks_count, progress.total_tasks) == (1, 2)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_task_requires_files(db_session):
    seeded = await seed_course(db_session, tasks=0)

    with pytest.raises(ValidationFailed):
        await catalog_ops.create_task(
            db_session,
            coach_id=seeded["coach"].id,
            skill_id=seeded["skills"][0].id,
            title="Empty",
            files=[],
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_task_clears_deadline_explicitly(db_session):
    seeded = await seed_course(db_session, tasks=1)
    from tests.factories import _tomorrow

    task = await catalog_ops.update_task(
        db_session,
        coach_id=seeded["coach"].id,
        task_id=seeded["tasks"][0].id,
        updates={"deadline": _tomorrow()},
    )
    assert task.deadline is not None

    task = await catalog_ops.update_task(
        db_session,
        coach_id=seeded["coach"].id,
        task_id=seeded["tasks"][0].id,
        updates={"title": "Renamed"},
    )
    assert task.deadline is not None
    assert task.title == "Renamed"

    task = await catalog_ops.update_task(
        db_session,
        coach_id=seeded["coach"].id,
        task_id=seeded["tasks"][0].id,
        updates={"deadline": None},
    )
    assert task.deadline is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_task_purges_progress_references(db_session, storage):
    seeded = await seed_course(db_session, tasks=4)
    student = seeded["students"][0]
    course = seeded["course"]
    doomed = seeded["tasks"][0]

    await progress_ops.complete_task(
        db_session, user_id=student.id, course_id=course.id, task_id=doomed.id
    )
    await progress_ops.submit_task(
        db_session,
        user_id=student.id,
        course_id=course.id,
        task_id=doomed.id,
        uploads=[StoredUpload(url="uploads/x.mp4", original_name="x.mp4")],
    )

    await catalog_ops.delete_task(
        db_session, coach_id=seeded["coach"].id, task_id=doomed.id, storage=storage
    )

    assert await _count(db_session, Task, Task.id == doomed.id) == 0
    assert await _count(db_session, CompletedTask, CompletedTask.task_id == doomed.id) == 0
    assert await _count(db_session, TaskProgress, TaskProgress.task_id == doomed.id) == 0
    assert await _count(db_session, TaskUpload) == 0
    progress = await load_progress(db_session, student.id, course.id)
    assert (progress.completed_tasks_count, progress.total_tasks) == (0, 3)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_task_requires_owner(db_session):
    seeded = await seed_course(db_session, tasks=1)

    with pytest.raises(UnauthorizedError):
        await catalog_ops.delete_task(
            db_session,
            coach_id=seeded["students"][0].id,
            task_id=seeded["tasks"][0].id,
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_skill_removes_tasks_and_references(db_session):
    seeded = await seed_course(db_session, tasks=4, skills=2)
    student = seeded["students"][0]
    course = seeded["course"]
    first_skill = seeded["skills"][0]
    # Tasks 0 and 2 live in the first skill
    await progress_ops.complete_task(
        db_session, user_id=student.id, course_id=course.id, task_id=seeded["tasks"][0].id
    )
    await progress_ops.complete_task(
        db_session, user_id=student.id, course_id=course.id, task_id=seeded["tasks"][1].id
    )

    await catalog_ops.delete_skill(
        db_session, coach_id=seeded["coach"].id, skill_id=first_skill.id
    )

    assert await _count(db_session, Skill, Skill.id == first_skill.id) == 0
    assert await _count(db_session, Task, Task.skill_id == first_skill.id) == 0
    progress = await load_progress(db_session, student.id, course.id)
    assert progress.completed_task_ids == [seeded["tasks"][1].id]
    assert (progress.completed_tasks_count, progress.total_tasks) == (1, 2)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delete_course_removes_everything(db_session, storage):
    seeded = await seed_course(db_session, tasks=2, students=2)
    course = seeded["course"]
    for student in seeded["students"]:
        await progress_ops.complete_task(
            db_session,
            user_id=student.id,
            course_id=course.id,
            task_id=seeded["tasks"][0].id,
        )

    await catalog_ops.delete_course(
        db_session, coach_id=seeded["coach"].id, course_id=course.id, storage=storage
    )

    assert await _count(db_session, Course, Course.id == course.id) == 0
    assert await _count(db_session, Skill) == 0
    assert await _count(db_session, Task) == 0
    assert await _count(db_session, ProgressRecord) == 0
    assert await _count(db_session, CompletedTask) == 0
    assert await _count(db_session, TaskProgress) == 0
    assert await _count(db_session, course_enrollments) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_task_titles(db_session):
    seeded = await seed_course(db_session, tasks=2)
    ids = [t.id for t in seeded["tasks"]]

    titles = await catalog_ops.task_titles(db_session, ids + [uuid.uuid4()])

    assert titles == {str(ids[0]): "Task 0", str(ids[1]): "Task 1"}
    with pytest.raises(ValidationFailed):
        await catalog_ops.task_titles(db_session, [])


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_course_dashboard_aggregates(db_session):
    seeded = await seed_course(db_session, tasks=4, students=2)
    course = seeded["course"]
    coach = seeded["coach"]
    active, idle = seeded["students"]
    task = seeded["tasks"][0]

    await progress_ops.complete_task(
        db_session, user_id=active.id, course_id=course.id, task_id=task.id
    )
    await progress_ops.submit_task(
        db_session,
        user_id=active.id,
        course_id=course.id,
        task_id=seeded["tasks"][1].id,
        uploads=[StoredUpload(url="uploads/y.mp4", original_name="y.mp4")],
    )
    await progress_ops.rate_task(
        db_session,
        coach_id=coach.id,
        course_id=course.id,
        student_id=active.id,
        task_id=task.id,
        rating=5,
    )

    dashboard = await catalog_ops.course_dashboard(
        db_session, coach_id=coach.id, course_id=course.id
    )

    by_id = {row["id"]: row["progress"] for row in dashboard["students"]}
    assert by_id[active.id]["completion_percentage"] == 25
    assert by_id[active.id]["average_rating"] == 5.0
    assert by_id[active.id]["pending_reviews"] == 1
    assert by_id[idle.id]["completion_percentage"] == 0
    assert by_id[idle.id]["total_tasks"] == 4

    stats = dashboard["stats"]
    assert stats["total_students"] == 2
    assert stats["total_tasks"] == 4
    assert stats["average_completion"] == 13
    assert stats["average_rating"] == 2.5
    assert stats["pending_reviews"] == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_course_dashboard_empty_course(db_session):
    seeded = await seed_course(db_session, tasks=0, students=0)

    dashboard = await catalog_ops.course_dashboard(
        db_session, coach_id=seeded["coach"].id, course_id=seeded["course"].id
    )

    assert dashboard["students"] == []
    assert dashboard["stats"]["average_completion"] == 0
    assert dashboard["stats"]["average_rating"] == 0.0
