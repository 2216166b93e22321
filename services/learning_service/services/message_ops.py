"""Coach broadcasts addressed to a group/section pair."""

import uuid

from libs.common.errors import UnauthorizedError, ValidationFailed
from libs.common.logging import get_logger
from services.learning_service.models import CoachMessage, User, UserRole
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


def _require(*values: str) -> list[str]:
    cleaned = [(value or "").strip() for value in values]
    if not all(cleaned):
        raise ValidationFailed("Group, section and content are required")
    return cleaned


async def send_message(
    db: AsyncSession,
    *,
    sender_id: uuid.UUID,
    group: str,
    section: str,
    content: str,
) -> CoachMessage:
    group, section, content = _require(group, section, content)

    sender = await db.get(User, sender_id)
    if sender is None or sender.role != UserRole.COACH:
        raise UnauthorizedError("Only coaches can send messages")

    message = CoachMessage(
        sender_id=sender_id,
        group_label=group,
        section_label=section,
        content=content,
    )
    db.add(message)
    await db.commit()
    logger.info("Coach %s messaged %s/%s", sender_id, group, section)

    result = await db.execute(
        select(CoachMessage)
        .where(CoachMessage.id == message.id)
        .options(selectinload(CoachMessage.sender))
    )
    return result.scalar_one()


async def list_messages(
    db: AsyncSession, *, group: str, section: str
) -> list[CoachMessage]:
    group = (group or "").strip()
    section = (section or "").strip()
    if not group or not section:
        raise ValidationFailed("Group and section are required")

    result = await db.execute(
        select(CoachMessage)
        .where(
            CoachMessage.group_label == group,
            CoachMessage.section_label == section,
        )
        .options(selectinload(CoachMessage.sender))
        .order_by(CoachMessage.created_at, CoachMessage.id)
    )
    return list(result.scalars().all())
