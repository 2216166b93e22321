"""Leaderboard schemas."""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.learning_service.schemas.badge import BadgeResponse


class StudentCreate(BaseModel):
    name: str
    score: int = Field(0, ge=0)
    badges: list[uuid.UUID] = []
    user_id: Optional[uuid.UUID] = None


class StudentResponse(BaseModel):
    id: uuid.UUID
    name: str
    score: int
    user_id: Optional[uuid.UUID] = None
    badges: list[BadgeResponse] = []

    model_config = ConfigDict(from_attributes=True)
