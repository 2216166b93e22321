"""Leaderboard endpoints."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import require_coach
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.learning_service.schemas import (
    BadgeResponse,
    StudentCreate,
    StudentResponse,
)
from services.learning_service.services import badge_ops, student_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/students", tags=["students"])


@router.get("", response_model=list[StudentResponse])
async def list_students(db: AsyncSession = Depends(get_async_db)):
    """Leaderboard, highest score first."""
    return await student_ops.list_students(db)


@router.post("/add", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
async def add_student(
    payload: StudentCreate,
    _coach: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    return await student_ops.create_student(
        db,
        name=payload.name,
        score=payload.score,
        badge_ids=payload.badges,
        user_id=payload.user_id,
    )


@router.get("/badges/all", response_model=list[BadgeResponse])
async def all_badges(db: AsyncSession = Depends(get_async_db)):
    return await badge_ops.list_badges(db)


@router.get("/{student_id}/badges", response_model=list[BadgeResponse])
async def student_badges(
    student_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)
):
    student = await student_ops.get_student(db, student_id)
    return student.badges
