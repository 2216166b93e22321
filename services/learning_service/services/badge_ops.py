"""Badge catalog and threshold evaluation."""

import re
import uuid
from typing import Optional

from libs.common.errors import NotFoundError, ValidationFailed
from libs.common.logging import get_logger
from services.learning_service.models import (
    Badge,
    BadgeThresholdKind,
    CompletedTask,
    ProgressRecord,
    User,
    UserBadge,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

_COMPLETE_N_TASKS = re.compile(r"^\s*complete\s+(\d+)\s+tasks?\s*$", re.IGNORECASE)


def parse_criteria(criteria: str) -> tuple[Optional[BadgeThresholdKind], Optional[int]]:
    """Derive a typed threshold from display text such as ``"Complete 5 tasks"``.

    Unrecognised text yields ``(None, None)``; such badges are never
    auto-awarded.
    """
    match = _COMPLETE_N_TASKS.match(criteria or "")
    if not match:
        return None, None
    return BadgeThresholdKind.COMPLETED_TASKS, int(match.group(1))


async def total_completed_tasks(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Completed tasks summed over every course the user has progress in."""
    result = await db.execute(
        select(func.count())
        .select_from(CompletedTask)
        .join(ProgressRecord, CompletedTask.progress_id == ProgressRecord.id)
        .where(ProgressRecord.user_id == user_id)
    )
    return result.scalar_one()


async def held_badge_ids(db: AsyncSession, user_id: uuid.UUID) -> set[uuid.UUID]:
    result = await db.execute(
        select(UserBadge.badge_id).where(UserBadge.user_id == user_id)
    )
    return set(result.scalars().all())


def _threshold_met(badge: Badge, completed: int) -> bool:
    if badge.threshold_kind == BadgeThresholdKind.COMPLETED_TASKS:
        return badge.threshold_target is not None and completed >= badge.threshold_target
    return False


async def award_badge(
    db: AsyncSession, *, user_id: uuid.UUID, badge_id: uuid.UUID
) -> bool:
    """Grant a badge unless already held. Returns True if newly granted.

    Does not commit.
    """
    existing = await db.get(UserBadge, (user_id, badge_id))
    if existing:
        return False
    db.add(UserBadge(user_id=user_id, badge_id=badge_id))
    await db.flush()
    return True


async def evaluate_badges(db: AsyncSession, user_id: uuid.UUID) -> list[Badge]:
    """Grant every badge whose threshold the user now meets.

    Returns only the badges granted by this call.
    """
    completed = await total_completed_tasks(db, user_id)
    held = await held_badge_ids(db, user_id)

    result = await db.execute(
        select(Badge)
        .where(Badge.threshold_kind.is_not(None))
        .order_by(Badge.threshold_target, Badge.created_at)
    )
    granted = []
    for badge in result.scalars().all():
        if badge.id in held or not _threshold_met(badge, completed):
            continue
        if await award_badge(db, user_id=user_id, badge_id=badge.id):
            granted.append(badge)

    if granted:
        await db.commit()
        logger.info(
            "Awarded %d badge(s) to user %s at %d completed tasks: %s",
            len(granted),
            user_id,
            completed,
            ", ".join(b.title for b in granted),
        )
    return granted


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


async def list_badges(db: AsyncSession) -> list[Badge]:
    result = await db.execute(select(Badge).order_by(Badge.created_at))
    return list(result.scalars().all())


async def create_badge(
    db: AsyncSession,
    *,
    title: str,
    description: str,
    icon: str,
    criteria: str,
    badge_type: str = "general",
    threshold_kind: Optional[BadgeThresholdKind] = None,
    threshold_target: Optional[int] = None,
) -> Badge:
    if (threshold_kind is None) != (threshold_target is None):
        raise ValidationFailed("threshold_kind and threshold_target go together")
    if threshold_target is not None and threshold_target < 1:
        raise ValidationFailed("threshold_target must be at least 1")
    if threshold_kind is None:
        threshold_kind, threshold_target = parse_criteria(criteria)

    badge = Badge(
        title=title,
        description=description,
        icon=icon,
        criteria=criteria,
        badge_type=badge_type,
        threshold_kind=threshold_kind,
        threshold_target=threshold_target,
    )
    db.add(badge)
    await db.commit()
    await db.refresh(badge)
    logger.info("Created badge %s (%s)", badge.title, badge.id)
    return badge


async def list_user_badges(db: AsyncSession, user_id: uuid.UUID) -> list[UserBadge]:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .options(selectinload(UserBadge.badge))
        .order_by(UserBadge.awarded_at)
    )
    return list(result.scalars().all())
