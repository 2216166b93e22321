"""Leaderboard profiles: coach-entered scores and showcased badges."""

import uuid
from typing import Optional

from libs.common.errors import ConflictError, NotFoundError, ValidationFailed
from libs.common.logging import get_logger
from services.learning_service.models import Badge, StudentProfile, User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


async def list_students(db: AsyncSession) -> list[StudentProfile]:
    """Highest score first."""
    result = await db.execute(
        select(StudentProfile)
        .options(selectinload(StudentProfile.badges))
        .order_by(StudentProfile.score.desc(), StudentProfile.name)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_student(db: AsyncSession, student_id: uuid.UUID) -> StudentProfile:
    result = await db.execute(
        select(StudentProfile)
        .where(StudentProfile.id == student_id)
        .options(selectinload(StudentProfile.badges))
        .execution_options(populate_existing=True)
    )
    student = result.scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student not found")
    return student


async def create_student(
    db: AsyncSession,
    *,
    name: str,
    score: int = 0,
    badge_ids: Optional[list[uuid.UUID]] = None,
    user_id: Optional[uuid.UUID] = None,
) -> StudentProfile:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Name is required")
    if score < 0:
        raise ValidationFailed("Score cannot be negative")

    badges = []
    if badge_ids:
        wanted = set(badge_ids)
        result = await db.execute(select(Badge).where(Badge.id.in_(wanted)))
        badges = list(result.scalars().all())
        if len(badges) != len(wanted):
            raise ValidationFailed("Unknown badge id")

    if user_id is not None:
        if await db.get(User, user_id) is None:
            raise NotFoundError("User not found")
        existing = await db.execute(
            select(StudentProfile.id).where(StudentProfile.user_id == user_id)
        )
        if existing.first() is not None:
            raise ConflictError("User already has a student profile")

    student = StudentProfile(name=name, score=score, user_id=user_id, badges=badges)
    db.add(student)
    await db.commit()
    logger.info("Added student %s with score %d", student.id, score)
    return await get_student(db, student.id)
