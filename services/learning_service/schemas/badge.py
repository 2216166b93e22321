"""Badge schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.learning_service.models import BadgeThresholdKind


class BadgeResponse(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    icon: str
    criteria: str
    badge_type: str
    threshold_kind: Optional[BadgeThresholdKind] = None
    threshold_target: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BadgeCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str
    icon: str
    criteria: str
    badge_type: str = "general"
    threshold_kind: Optional[BadgeThresholdKind] = None
    threshold_target: Optional[int] = None


class UserBadgeResponse(BaseModel):
    badge: BadgeResponse
    awarded_at: datetime

    model_config = ConfigDict(from_attributes=True)
