"""Group schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.learning_service.models import InvitationStatus
from services.learning_service.schemas.user import UserSummary


class GroupMemberResponse(BaseModel):
    user: UserSummary
    joined_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupInvitationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    invited_by_id: uuid.UUID
    status: InvitationStatus
    invited_at: datetime
    responded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GroupVideoResponse(BaseModel):
    id: uuid.UUID
    url: str
    uploaded_by_id: uuid.UUID
    uploaded_at: datetime

    model_config = ConfigDict(from_attributes=True)


class GroupResponse(BaseModel):
    id: uuid.UUID
    name: str
    creator: UserSummary
    coach: Optional[UserSummary] = None
    members: list[GroupMemberResponse] = []
    invitations: list[GroupInvitationResponse] = []
    videos: list[GroupVideoResponse] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PendingInvitationResponse(BaseModel):
    group_id: uuid.UUID
    group_name: str
    invited_by_id: uuid.UUID
    invited_at: datetime


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1)


class InviteRequest(BaseModel):
    user_id: uuid.UUID


class RespondRequest(BaseModel):
    status: str


class RemoveMemberRequest(BaseModel):
    member_id: uuid.UUID


class AssignCoachRequest(BaseModel):
    coach_id: uuid.UUID


class VideoCreate(BaseModel):
    url: str = Field(..., min_length=1)
