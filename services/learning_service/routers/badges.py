"""Badge catalog and holdings endpoints."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user, require_coach
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.learning_service.schemas import (
    BadgeCreate,
    BadgeResponse,
    UserBadgeResponse,
)
from services.learning_service.services import badge_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/badges", tags=["badges"])


@router.get("", response_model=list[BadgeResponse])
async def list_badges(db: AsyncSession = Depends(get_async_db)):
    return await badge_ops.list_badges(db)


@router.post("", response_model=BadgeResponse, status_code=status.HTTP_201_CREATED)
async def create_badge(
    payload: BadgeCreate,
    _coach: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a badge. Criteria like "Complete 5 tasks" set the threshold
    when no typed threshold is given."""
    return await badge_ops.create_badge(db, **payload.model_dump())


@router.get("/me", response_model=list[UserBadgeResponse])
async def my_badges(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await badge_ops.list_user_badges(db, current_user.user_id)


@router.get("/users/{user_id}", response_model=list[UserBadgeResponse])
async def user_badges(user_id: uuid.UUID, db: AsyncSession = Depends(get_async_db)):
    return await badge_ops.list_user_badges(db, user_id)
