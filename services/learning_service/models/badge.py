import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.learning_service.models.enums import BadgeThresholdKind, enum_values
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Badge(Base):
    __tablename__ = "badges"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String, nullable=False)  # URL or icon name
    criteria: Mapped[str] = mapped_column(String, nullable=False)  # display text
    badge_type: Mapped[str] = mapped_column(
        String, default="general", server_default="general"
    )

    # Typed threshold the evaluator checks; a badge without one is never
    # auto-awarded.
    threshold_kind: Mapped[Optional[BadgeThresholdKind]] = mapped_column(
        SAEnum(
            BadgeThresholdKind,
            name="badge_threshold_kind_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    threshold_target: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<Badge {self.title}>"


class UserBadge(Base):
    """Awarded badge. The composite key makes awards unique per holder."""

    __tablename__ = "user_badges"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), primary_key=True
    )
    badge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("badges.id"), primary_key=True
    )
    awarded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    user = relationship("User", back_populates="badges")
    badge = relationship("Badge")

    def __repr__(self):
        return f"<UserBadge User={self.user_id} Badge={self.badge_id}>"
