import uuid
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["student", "coach"]


class AuthUser(BaseModel):
    """
    Caller identity decoded from a verified bearer token.
    """

    user_id: uuid.UUID = Field(..., alias="sub")
    email: Optional[EmailStr] = None
    role: Role = "student"

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_coach(self) -> bool:
        return self.role == "coach"
