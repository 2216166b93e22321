"""Group membership endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.learning_service.models import UserRole
from services.learning_service.schemas import (
    AssignCoachRequest,
    GroupCreate,
    GroupInvitationResponse,
    GroupResponse,
    GroupVideoResponse,
    InviteRequest,
    MessageResponse,
    PendingInvitationResponse,
    RemoveMemberRequest,
    RespondRequest,
    UserSummary,
    VideoCreate,
)
from services.learning_service.services import group_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("/create", response_model=GroupResponse, status_code=status.HTTP_201_CREATED)
async def create_group(
    payload: GroupCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.create_group(
        db, creator_id=current_user.user_id, name=payload.name
    )


@router.get("/search-users", response_model=list[UserSummary])
async def search_users(
    q: str = Query("", max_length=100),
    role: Optional[UserRole] = Query(None),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.search_users(db, query=q, role=role)


@router.get("/all", response_model=list[GroupResponse])
async def list_groups(
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.list_groups(db)


@router.get("/my", response_model=list[GroupResponse])
async def list_my_groups(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.list_my_groups(db, current_user.user_id)


@router.get("/invitations", response_model=list[PendingInvitationResponse])
async def pending_invitations(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    invitations = await group_ops.pending_invitations(db, current_user.user_id)
    return [
        PendingInvitationResponse(
            group_id=inv.group_id,
            group_name=inv.group.name,
            invited_by_id=inv.invited_by_id,
            invited_at=inv.invited_at,
        )
        for inv in invitations
    ]


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.get_group(db, group_id)


@router.delete("/{group_id}", response_model=MessageResponse)
async def delete_group(
    group_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await group_ops.delete_group(db, user_id=current_user.user_id, group_id=group_id)
    return MessageResponse(message="Group deleted")


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


@router.post("/{group_id}/invite", response_model=GroupInvitationResponse)
async def invite(
    group_id: uuid.UUID,
    payload: InviteRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.invite(
        db,
        inviter_id=current_user.user_id,
        group_id=group_id,
        invitee_id=payload.user_id,
    )


@router.post("/{group_id}/respond", response_model=MessageResponse)
async def respond(
    group_id: uuid.UUID,
    payload: RespondRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    decision = await group_ops.respond(
        db, user_id=current_user.user_id, group_id=group_id, status=payload.status
    )
    return MessageResponse(message=f"Invitation {decision.value}")


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------


@router.post("/{group_id}/join", response_model=GroupResponse)
async def join(
    group_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.join(db, user_id=current_user.user_id, group_id=group_id)


@router.post("/{group_id}/leave", response_model=MessageResponse)
async def leave(
    group_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await group_ops.leave(db, user_id=current_user.user_id, group_id=group_id)
    return MessageResponse(message="Left group")


@router.post("/{group_id}/remove-member", response_model=GroupResponse)
async def remove_member(
    group_id: uuid.UUID,
    payload: RemoveMemberRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.remove_member(
        db,
        actor_id=current_user.user_id,
        group_id=group_id,
        member_id=payload.member_id,
    )


@router.post("/{group_id}/assign-coach", response_model=GroupResponse)
async def assign_coach(
    group_id: uuid.UUID,
    payload: AssignCoachRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.assign_coach(
        db,
        actor_id=current_user.user_id,
        group_id=group_id,
        coach_id=payload.coach_id,
    )


@router.post("/{group_id}/remove-coach", response_model=GroupResponse)
async def remove_coach(
    group_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.remove_coach(
        db, actor_id=current_user.user_id, group_id=group_id
    )


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------


@router.post(
    "/{group_id}/upload-video",
    response_model=GroupVideoResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_video(
    group_id: uuid.UUID,
    payload: VideoCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await group_ops.add_video(
        db, user_id=current_user.user_id, group_id=group_id, url=payload.url
    )


@router.delete("/{group_id}/video/{video_id}", response_model=MessageResponse)
async def delete_video(
    group_id: uuid.UUID,
    video_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await group_ops.delete_video(
        db, user_id=current_user.user_id, group_id=group_id, video_id=video_id
    )
    return MessageResponse(message="Video deleted")
