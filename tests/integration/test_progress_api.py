"""Integration tests for progress, review and badge endpoints."""

import uuid

import pytest
from tests.conftest import override_auth
from tests.factories import BadgeFactory, seed_course


async def _submit(client, course_id, task_id, *names):
    return await client.post(
        "/progress/submit-task",
        data={"course_id": str(course_id), "task_id": str(task_id)},
        files=[("student_files", (name, b"clip", "video/mp4")) for name in names],
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_progress_before_activity_is_empty(client, db_session, app):
    seeded = await seed_course(db_session, tasks=3)
    student = seeded["students"][0]

    with override_auth(app, student):
        response = await client.get(f"/progress/{seeded['course'].id}")

    assert response.status_code == 200
    data = response.json()
    assert data["completed_tasks"] == []
    assert data["completion_percentage"] == 0
    assert data["average_rating"] == 0.0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_complete_task_reports_percentage_and_badges(client, db_session, app):
    seeded = await seed_course(db_session, tasks=4)
    badge = BadgeFactory.create(target=1, title="First Rally")
    db_session.add(badge)
    await db_session.commit()
    student = seeded["students"][0]
    course_id = str(seeded["course"].id)
    task_id = str(seeded["tasks"][0].id)

    with override_auth(app, student):
        response = await client.post(
            "/progress/complete-task",
            json={"course_id": course_id, "task_id": task_id},
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["progress"]["completion_percentage"] == 25
        assert data["progress"]["completed_tasks"] == [task_id]
        assert [b["title"] for b in data["new_badges"]] == ["First Rally"]

        # Repeat: same state, no new badge
        response = await client.post(
            "/progress/complete-task",
            json={"course_id": course_id, "task_id": task_id},
        )
        assert response.json()["progress"]["completed_tasks_count"] == 1
        assert response.json()["new_badges"] == []

        response = await client.get("/badges/me")
        assert [ub["badge"]["title"] for ub in response.json()] == ["First Rally"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_rate_review_flow(client, db_session, app):
    seeded = await seed_course(db_session, tasks=2)
    student = seeded["students"][0]
    coach = seeded["coach"]
    course_id = seeded["course"].id
    first, second = seeded["tasks"]

    with override_auth(app, student):
        response = await _submit(client, course_id, first.id, "a.mp4", "b.mp4")
        assert response.status_code == 200, response.text
        entry = response.json()["task_progress"][0]
        assert entry["submitted_for_review"] is True
        assert [u["original_name"] for u in entry["uploads"]] == ["a.mp4", "b.mp4"]
        await _submit(client, course_id, second.id, "c.mp4")

    with override_auth(app, coach):
        response = await client.get(f"/progress/submissions/{course_id}")
        assert response.status_code == 200
        assert response.json()[0]["student"]["id"] == str(student.id)

        for task, rating in ((first, 4), (second, 5)):
            response = await client.post(
                f"/courses/{course_id}/rate-task",
                json={
                    "student_id": str(student.id),
                    "task_id": str(task.id),
                    "rating": rating,
                    "feedback": "Solid",
                },
            )
            assert response.status_code == 200, response.text
        rated = response.json()
        assert rated["task_id"] == str(second.id)
        assert rated["coach_rating"] == 5
        assert rated["submitted_for_review"] is False
        assert [(u["original_name"], u["position"]) for u in rated["uploads"]] == [
            ("c.mp4", 0)
        ]

        response = await client.post(
            f"/courses/{course_id}/rate-task",
            json={"student_id": str(student.id), "task_id": str(first.id), "rating": 9},
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "validation"

        response = await client.post(
            f"/courses/{course_id}/review-task",
            json={
                "student_id": str(student.id),
                "task_id": str(first.id),
                "approved": True,
                "feedback": "Approved",
            },
        )
        assert response.status_code == 200, response.text
        assert response.json()["approval"] == "approved"
        assert response.json()["completed"] is True
        assert [u["position"] for u in response.json()["uploads"]] == [0, 1]

        response = await client.get(f"/courses/{course_id}/student/{student.id}/progress")
        assert response.status_code == 200, response.text
        overview = response.json()
        assert overview["progress"]["average_rating"] == 4.5
        assert overview["progress"]["completed_tasks"] == [str(first.id)]
        assert len(overview["tasks"]) == 2

    with override_auth(app, student):
        response = await client.patch(f"/progress/{course_id}/mark-seen")
        assert response.json() == {"updated": 1}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_submit_without_files_is_validation_error(client, db_session, app):
    seeded = await seed_course(db_session, tasks=1)

    with override_auth(app, seeded["students"][0]):
        response = await client.post(
            "/progress/submit-task",
            data={
                "course_id": str(seeded["course"].id),
                "task_id": str(seeded["tasks"][0].id),
            },
        )

    assert response.status_code == 400
    assert response.json()["kind"] == "validation"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_coach_cannot_rate(client, db_session, app):
    seeded = await seed_course(db_session, tasks=1)
    other = await seed_course(db_session, tasks=0, students=0)

    with override_auth(app, seeded["students"][0]):
        await _submit(client, seeded["course"].id, seeded["tasks"][0].id, "a.mp4")

    with override_auth(app, other["coach"]):
        response = await client.post(
            f"/courses/{seeded['course'].id}/rate-task",
            json={
                "student_id": str(seeded["students"][0].id),
                "task_id": str(seeded["tasks"][0].id),
                "rating": 3,
            },
        )

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_task_deletion_drops_completion(client, db_session, app):
    seeded = await seed_course(db_session, tasks=4)
    student = seeded["students"][0]
    course_id = seeded["course"].id
    doomed = seeded["tasks"][0]

    with override_auth(app, student):
        await client.post(
            "/progress/complete-task",
            json={"course_id": str(course_id), "task_id": str(doomed.id)},
        )

    with override_auth(app, seeded["coach"]):
        response = await client.delete(f"/skills/tasks/{doomed.id}")
        assert response.status_code == 200, response.text

    with override_auth(app, student):
        response = await client.get(f"/progress/{course_id}")

    data = response.json()
    assert data["completed_tasks"] == []
    assert data["total_tasks"] == 3
    assert data["completion_percentage"] == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_badge_catalog_endpoints(client, db_session, app):
    seeded = await seed_course(db_session, tasks=0, students=1)

    with override_auth(app, seeded["coach"]):
        response = await client.post(
            "/badges",
            json={
                "title": "Five Alive",
                "description": "Five tasks done",
                "icon": "five",
                "criteria": "Complete 5 tasks",
            },
        )
    assert response.status_code == 201, response.text
    assert response.json()["threshold_target"] == 5

    with override_auth(app, seeded["students"][0]):
        response = await client.post(
            "/badges",
            json={"title": "x", "description": "x", "icon": "x", "criteria": "x"},
        )
    assert response.status_code == 403

    response = await client.get("/badges")
    assert [b["title"] for b in response.json()] == ["Five Alive"]

    response = await client.get(f"/badges/users/{seeded['students'][0].id}")
    assert response.json() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_rejected_submission_leaves_no_stored_files(client, db_session, app, storage):
    seeded = await seed_course(db_session, tasks=1)

    with override_auth(app, seeded["students"][0]):
        response = await _submit(client, seeded["course"].id, uuid.uuid4(), "a.mp4")

    assert response.status_code == 404
    assert list(storage.uploads_dir.iterdir()) == []
