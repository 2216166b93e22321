"""User account schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.learning_service.models import UserRole


class UserSummary(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class CourseRef(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    coach_id: uuid.UUID

    model_config = ConfigDict(from_attributes=True)


class UserProfileResponse(UserSummary):
    enrolled_courses: list[CourseRef] = []
    group_label: str = ""
    section_label: str = ""
    created_at: datetime


class UserRegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str
    role: UserRole = UserRole.STUDENT


class UserProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    email: Optional[EmailStr] = None
    token: Optional[str] = None
    new_password: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


class AffiliationsResponse(BaseModel):
    groups: list[str] = []
    sections: list[str] = []


class JoinAffiliationRequest(BaseModel):
    group: Optional[str] = None
    section: Optional[str] = None


class JoinAffiliationResponse(BaseModel):
    message: str
    group: str
    section: str


class CoachMessageCreate(BaseModel):
    group: Optional[str] = None
    section: Optional[str] = None
    content: Optional[str] = None


class CoachMessageResponse(BaseModel):
    id: uuid.UUID
    group: str
    section: str
    content: str
    sender: UserSummary
    created_at: datetime

    @classmethod
    def from_message(cls, message) -> "CoachMessageResponse":
        return cls(
            id=message.id,
            group=message.group_label,
            section=message.section_label,
            content=message.content,
            sender=UserSummary.model_validate(message.sender),
            created_at=message.created_at,
        )
