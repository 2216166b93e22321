"""Group membership state machine.

Per (group, user) the states are non-member, invited, member and coach. The
creator is always a member and can neither leave nor be removed.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailed,
)
from libs.common.logging import get_logger
from services.learning_service.models import (
    Group,
    GroupInvitation,
    GroupMember,
    GroupVideo,
    InvitationStatus,
    User,
    UserRole,
)
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

SEARCH_LIMIT = 25


def _group_options() -> list:
    return [
        selectinload(Group.creator),
        selectinload(Group.coach),
        selectinload(Group.members).selectinload(GroupMember.user),
        selectinload(Group.invitations),
        selectinload(Group.videos),
    ]


async def get_group(
    db: AsyncSession, group_id: uuid.UUID, *, for_update: bool = False
) -> Group:
    query = (
        select(Group)
        .where(Group.id == group_id)
        .options(*_group_options())
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    group = result.scalar_one_or_none()
    if not group:
        raise NotFoundError("Group not found")
    return group


async def _commit_group(db: AsyncSession, group: Group) -> Group:
    await db.commit()
    return await get_group(db, group.id)


def _is_creator(group: Group, user_id: uuid.UUID) -> bool:
    return group.creator_id == user_id


def _is_coach(group: Group, user_id: uuid.UUID) -> bool:
    return group.coach_id is not None and group.coach_id == user_id


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


async def create_group(
    db: AsyncSession, *, creator_id: uuid.UUID, name: str
) -> Group:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Group name is required")
    existing = await db.execute(select(Group.id).where(Group.name == name))
    if existing.first() is not None:
        raise ConflictError("A group with this name already exists")

    group = Group(name=name, creator_id=creator_id)
    group.members.append(GroupMember(user_id=creator_id))
    db.add(group)
    await db.flush()
    logger.info("User %s created group %s (%s)", creator_id, name, group.id)
    return await _commit_group(db, group)


async def delete_group(
    db: AsyncSession, *, user_id: uuid.UUID, group_id: uuid.UUID
) -> None:
    group = await get_group(db, group_id, for_update=True)
    if not _is_creator(group, user_id):
        raise UnauthorizedError("Only the creator can delete the group")
    await db.delete(group)
    await db.commit()
    logger.info("Group %s deleted by %s", group_id, user_id)


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


async def invite(
    db: AsyncSession,
    *,
    inviter_id: uuid.UUID,
    group_id: uuid.UUID,
    invitee_id: uuid.UUID,
) -> GroupInvitation:
    group = await get_group(db, group_id, for_update=True)
    if not group.has_member(inviter_id):
        raise UnauthorizedError("Only group members can invite")
    if not await db.get(User, invitee_id):
        raise NotFoundError("User not found")
    if group.has_member(invitee_id):
        raise ConflictError("User is already a member")
    if any(
        inv.user_id == invitee_id and inv.status == InvitationStatus.PENDING
        for inv in group.invitations
    ):
        raise ConflictError("User already has a pending invitation")

    invitation = GroupInvitation(
        user_id=invitee_id,
        invited_by_id=inviter_id,
        status=InvitationStatus.PENDING,
    )
    group.invitations.append(invitation)
    await db.commit()
    logger.info("User %s invited %s to group %s", inviter_id, invitee_id, group_id)
    return invitation


async def respond(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    group_id: uuid.UUID,
    status: str,
) -> InvitationStatus:
    """Accept or decline the caller's pending invitation."""
    try:
        decision = InvitationStatus(status)
    except ValueError:
        decision = None
    if decision not in (InvitationStatus.ACCEPTED, InvitationStatus.DECLINED):
        raise ValidationFailed("Status must be 'accepted' or 'declined'")

    group = await get_group(db, group_id, for_update=True)
    invitation = next(
        (
            inv
            for inv in group.invitations
            if inv.user_id == user_id and inv.status == InvitationStatus.PENDING
        ),
        None,
    )
    if invitation is None:
        raise NotFoundError("Invitation not found")

    invitation.status = decision
    invitation.responded_at = utc_now()
    if decision == InvitationStatus.ACCEPTED and not group.has_member(user_id):
        group.members.append(GroupMember(user_id=user_id))

    await db.commit()
    logger.info("User %s %s invitation to group %s", user_id, decision.value, group_id)
    return decision


async def pending_invitations(
    db: AsyncSession, user_id: uuid.UUID
) -> list[GroupInvitation]:
    result = await db.execute(
        select(GroupInvitation)
        .where(
            GroupInvitation.user_id == user_id,
            GroupInvitation.status == InvitationStatus.PENDING,
        )
        .options(selectinload(GroupInvitation.group))
        .order_by(GroupInvitation.invited_at)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


async def join(db: AsyncSession, *, user_id: uuid.UUID, group_id: uuid.UUID) -> Group:
    group = await get_group(db, group_id, for_update=True)
    if (
        group.has_member(user_id)
        or _is_coach(group, user_id)
        or _is_creator(group, user_id)
    ):
        raise ConflictError("Already a member")

    group.members.append(GroupMember(user_id=user_id))
    await db.flush()
    logger.info("User %s joined group %s", user_id, group_id)
    return await _commit_group(db, group)


async def leave(db: AsyncSession, *, user_id: uuid.UUID, group_id: uuid.UUID) -> None:
    group = await get_group(db, group_id, for_update=True)
    if _is_creator(group, user_id):
        raise UnauthorizedError("Creator cannot leave the group")
    membership = next((m for m in group.members if m.user_id == user_id), None)
    if membership is None:
        raise NotFoundError("Not a member of this group")

    group.members.remove(membership)
    await db.commit()
    logger.info("User %s left group %s", user_id, group_id)


async def remove_member(
    db: AsyncSession,
    *,
    actor_id: uuid.UUID,
    group_id: uuid.UUID,
    member_id: uuid.UUID,
) -> Group:
    group = await get_group(db, group_id, for_update=True)
    if not (_is_creator(group, actor_id) or _is_coach(group, actor_id)):
        raise UnauthorizedError("Only the creator or coach can remove members")
    if _is_creator(group, member_id):
        raise UnauthorizedError("The creator cannot be removed")
    membership = next((m for m in group.members if m.user_id == member_id), None)
    if membership is None:
        raise NotFoundError("Member not found")

    group.members.remove(membership)
    await db.flush()
    logger.info("User %s removed %s from group %s", actor_id, member_id, group_id)
    return await _commit_group(db, group)


async def assign_coach(
    db: AsyncSession,
    *,
    actor_id: uuid.UUID,
    group_id: uuid.UUID,
    coach_id: uuid.UUID,
) -> Group:
    group = await get_group(db, group_id, for_update=True)
    if not _is_creator(group, actor_id):
        raise UnauthorizedError("Only the group creator can assign a coach")
    coach = await db.get(User, coach_id)
    if not coach:
        raise NotFoundError("User not found")
    if coach.role != UserRole.COACH:
        raise ValidationFailed("Assigned user must be a coach")

    group.coach_id = coach_id
    await db.flush()
    logger.info("Coach %s assigned to group %s", coach_id, group_id)
    return await _commit_group(db, group)


async def remove_coach(
    db: AsyncSession, *, actor_id: uuid.UUID, group_id: uuid.UUID
) -> Group:
    group = await get_group(db, group_id, for_update=True)
    if not _is_creator(group, actor_id):
        raise UnauthorizedError("Only the creator can remove the coach")

    group.coach_id = None
    await db.flush()
    logger.info("Coach removed from group %s", group_id)
    return await _commit_group(db, group)


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------


async def add_video(
    db: AsyncSession, *, user_id: uuid.UUID, group_id: uuid.UUID, url: str
) -> GroupVideo:
    if not url:
        raise ValidationFailed("Video URL is required")
    group = await get_group(db, group_id, for_update=True)
    if not (group.has_member(user_id) or _is_coach(group, user_id)):
        raise UnauthorizedError("Only group members or coach can upload")

    video = GroupVideo(url=url, uploaded_by_id=user_id)
    group.videos.append(video)
    await db.commit()
    logger.info("User %s added video %s to group %s", user_id, video.id, group_id)
    return video


async def delete_video(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    group_id: uuid.UUID,
    video_id: uuid.UUID,
) -> None:
    group = await get_group(db, group_id, for_update=True)
    if not _is_coach(group, user_id):
        raise UnauthorizedError("Only the coach can delete videos")
    video = next((v for v in group.videos if v.id == video_id), None)
    if video is None:
        raise NotFoundError("Video not found")

    group.videos.remove(video)
    await db.commit()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def list_groups(db: AsyncSession) -> list[Group]:
    result = await db.execute(
        select(Group).options(*_group_options()).order_by(Group.created_at)
    )
    return list(result.scalars().all())


async def list_my_groups(db: AsyncSession, user_id: uuid.UUID) -> list[Group]:
    result = await db.execute(
        select(Group)
        .join(GroupMember, GroupMember.group_id == Group.id)
        .where(GroupMember.user_id == user_id)
        .options(*_group_options())
        .order_by(Group.created_at)
    )
    return list(result.scalars().unique().all())


async def search_users(
    db: AsyncSession, *, query: str, role: Optional[UserRole] = None
) -> list[User]:
    """Case-insensitive substring match on name or email."""
    pattern = f"%{query}%"
    stmt = select(User).where(
        or_(User.name.ilike(pattern), User.email.ilike(pattern))
    )
    if role:
        stmt = stmt.where(User.role == role)
    result = await db.execute(stmt.order_by(User.name).limit(SEARCH_LIMIT))
    return list(result.scalars().all())
