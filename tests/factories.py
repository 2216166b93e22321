"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    coach = UserFactory.create(role=UserRole.COACH)
    db_session.add(coach)
    await db_session.commit()

``seed_course`` builds a whole coach -> course -> skill -> tasks tree in one
call since most tests start from one.
"""

import uuid
from datetime import datetime, timedelta, timezone

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _tomorrow() -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=1)


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex[:8]}@test.com"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserFactory:
    @staticmethod
    def create(password: str = "secret123", **overrides):
        from services.learning_service.models import User, UserRole
        from services.learning_service.services.user_ops import hash_password

        password_hash, password_salt = hash_password(password)
        defaults = {
            "id": _uuid(),
            "name": "Test Student",
            "email": _unique_email(),
            "role": UserRole.STUDENT,
            "password_hash": password_hash,
            "password_salt": password_salt,
        }
        defaults.update(overrides)
        return User(**defaults)


class CoachFactory:
    @staticmethod
    def create(**overrides):
        from services.learning_service.models import UserRole

        defaults = {"name": "Test Coach", "role": UserRole.COACH}
        defaults.update(overrides)
        return UserFactory.create(**defaults)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class CourseFactory:
    @staticmethod
    def create(coach_id=None, **overrides):
        from services.learning_service.models import Course

        defaults = {
            "id": _uuid(),
            "name": "Forehand Fundamentals",
            "description": "Grip, stance and swing.",
            "coach_id": coach_id or _uuid(),
        }
        defaults.update(overrides)
        return Course(**defaults)


class SkillFactory:
    @staticmethod
    def create(course_id=None, **overrides):
        from services.learning_service.models import Skill

        defaults = {
            "id": _uuid(),
            "course_id": course_id or _uuid(),
            "title": "Grip",
            "description": "Hold the paddle properly.",
            "position": 0,
        }
        defaults.update(overrides)
        return Skill(**defaults)


class TaskFactory:
    @staticmethod
    def create(skill_id=None, **overrides):
        from services.learning_service.models import Task, TaskContentType

        defaults = {
            "id": _uuid(),
            "skill_id": skill_id or _uuid(),
            "title": "Watch the grip video",
            "content_type": TaskContentType.VIDEO,
            "content_urls": [f"uploads/{uuid.uuid4()}.mp4"],
            "deadline": None,
            "position": 0,
        }
        defaults.update(overrides)
        return Task(**defaults)


class BadgeFactory:
    @staticmethod
    def create(target=None, **overrides):
        from services.learning_service.models import Badge, BadgeThresholdKind

        defaults = {
            "id": _uuid(),
            "title": f"Badge {uuid.uuid4().hex[:6]}",
            "description": "Awarded for steady practice.",
            "icon": "trophy",
            "criteria": f"Complete {target} tasks" if target else "Be awesome",
            "badge_type": "general",
            "threshold_kind": BadgeThresholdKind.COMPLETED_TASKS if target else None,
            "threshold_target": target,
        }
        defaults.update(overrides)
        return Badge(**defaults)


async def seed_course(db, *, tasks: int = 4, skills: int = 1, students: int = 1):
    """Insert a coach-owned course with enrolled students.

    Tasks are spread round-robin across the skills. Returns a dict with
    ``coach``, ``course``, ``skills``, ``tasks`` and ``students``.
    """
    from services.learning_service.models import course_enrollments
    from sqlalchemy import insert

    coach = CoachFactory.create()
    course = CourseFactory.create(coach_id=coach.id)
    skill_rows = [
        SkillFactory.create(course_id=course.id, title=f"Skill {i}", position=i)
        for i in range(skills)
    ]
    task_rows = [
        TaskFactory.create(
            skill_id=skill_rows[i % skills].id,
            title=f"Task {i}",
            position=i // skills,
        )
        for i in range(tasks)
    ]
    student_rows = [
        UserFactory.create(name=f"Student {i}") for i in range(students)
    ]

    db.add_all([coach, course, *skill_rows, *task_rows, *student_rows])
    await db.flush()
    for student in student_rows:
        await db.execute(
            insert(course_enrollments).values(
                course_id=course.id, user_id=student.id
            )
        )
    await db.commit()

    return {
        "coach": coach,
        "course": course,
        "skills": skill_rows,
        "tasks": task_rows,
        "students": student_rows,
    }


class StudentProfileFactory:
    @staticmethod
    def create(**overrides):
        from services.learning_service.models import StudentProfile

        defaults = {
            "id": _uuid(),
            "name": "Test Player",
            "score": 0,
            "badges": [],
        }
        defaults.update(overrides)
        return StudentProfile(**defaults)
