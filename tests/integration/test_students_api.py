"""Integration tests for leaderboard endpoints."""

import uuid

import pytest
from tests.conftest import override_auth
from tests.factories import BadgeFactory, CoachFactory, UserFactory


@pytest.mark.asyncio
@pytest.mark.integration
async def test_leaderboard_flow(client, db_session, app):
    coach = CoachFactory.create()
    student = UserFactory.create()
    badge = BadgeFactory.create(title="Fast Learner")
    db_session.add_all([coach, student, badge])
    await db_session.commit()

    with override_auth(app, student):
        response = await client.post("/students/add", json={"name": "Nope"})
        assert response.status_code == 403

    with override_auth(app, coach):
        response = await client.post(
            "/students/add",
            json={"name": "John Doe", "score": 800, "badges": [str(badge.id)]},
        )
        assert response.status_code == 201, response.text
        john_id = response.json()["id"]

        response = await client.post(
            "/students/add", json={"name": "Jane Smith", "score": 1100}
        )
        assert response.status_code == 201

        response = await client.post(
            "/students/add", json={"name": "Bad", "score": -5}
        )
        assert response.status_code == 400
        assert response.json()["kind"] == "validation"

    response = await client.get("/students")
    assert [(s["name"], s["score"]) for s in response.json()] == [
        ("Jane Smith", 1100),
        ("John Doe", 800),
    ]

    response = await client.get(f"/students/{john_id}/badges")
    assert [b["title"] for b in response.json()] == ["Fast Learner"]

    response = await client.get("/students/badges/all")
    assert [b["title"] for b in response.json()] == ["Fast Learner"]

    response = await client.get(f"/students/{uuid.uuid4()}/badges")
    assert response.status_code == 404
    assert response.json() == {"kind": "not_found", "detail": "Student not found"}
