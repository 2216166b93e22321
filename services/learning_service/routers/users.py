"""User account endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from libs.auth.dependencies import get_current_user, require_coach
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.emails.client import EmailClient, get_email_client
from libs.common.rate_limit import limiter
from libs.db.session import get_async_db
from services.learning_service.schemas import (
    AffiliationsResponse,
    CoachMessageCreate,
    CoachMessageResponse,
    JoinAffiliationRequest,
    JoinAffiliationResponse,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    UserProfileResponse,
    UserProfileUpdate,
    UserRegisterRequest,
)
from services.learning_service.services import message_ops, user_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "/register",
    response_model=UserProfileResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    payload: UserRegisterRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Create an account. Sign-in tokens are issued by the identity provider."""
    return await user_ops.register_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )


@router.get("/profile", response_model=UserProfileResponse)
async def get_profile(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await user_ops.get_profile(db, current_user.user_id)


@router.put("/profile", response_model=UserProfileResponse)
async def update_profile(
    payload: UserProfileUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await user_ops.update_profile(
        db,
        user_id=current_user.user_id,
        updates=payload.model_dump(exclude_unset=True),
    )


@router.post("/forgot-password", response_model=MessageResponse)
@limiter.limit(get_settings().RATE_LIMIT_PASSWORD_RESET)
async def forgot_password(
    request: Request,
    payload: PasswordResetRequest,
    db: AsyncSession = Depends(get_async_db),
    email_client: EmailClient = Depends(get_email_client),
):
    await user_ops.request_password_reset(
        db, email=payload.email, email_client=email_client
    )
    return MessageResponse(message="Password reset email sent")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: PasswordResetConfirm,
    db: AsyncSession = Depends(get_async_db),
):
    await user_ops.reset_password(
        db,
        email=payload.email,
        token=payload.token,
        new_password=payload.new_password,
    )
    return MessageResponse(message="Password has been reset")


@router.get("/groups", response_model=AffiliationsResponse)
async def list_affiliations(db: AsyncSession = Depends(get_async_db)):
    """Every group and section label in use."""
    groups, sections = await user_ops.list_affiliations(db)
    return AffiliationsResponse(groups=groups, sections=sections)


@router.post("/join-group", response_model=JoinAffiliationResponse)
async def join_affiliation(
    payload: JoinAffiliationRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await user_ops.join_affiliation(
        db,
        user_id=current_user.user_id,
        group=payload.group,
        section=payload.section,
    )
    return JoinAffiliationResponse(
        message="Joined group/section",
        group=user.group_label,
        section=user.section_label,
    )


@router.post(
    "/messages/send",
    response_model=CoachMessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(
    payload: CoachMessageCreate,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    message = await message_ops.send_message(
        db,
        sender_id=current_user.user_id,
        group=payload.group,
        section=payload.section,
        content=payload.content,
    )
    return CoachMessageResponse.from_message(message)


@router.get("/messages/group-section", response_model=list[CoachMessageResponse])
async def list_messages(
    group: Optional[str] = Query(None),
    section: Optional[str] = Query(None),
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    messages = await message_ops.list_messages(db, group=group, section=section)
    return [CoachMessageResponse.from_message(m) for m in messages]
