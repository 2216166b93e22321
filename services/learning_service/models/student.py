import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

student_profile_badges = Table(
    "student_profile_badges",
    Base.metadata,
    Column(
        "student_profile_id",
        Uuid,
        ForeignKey("student_profiles.id"),
        primary_key=True,
    ),
    Column("badge_id", Uuid, ForeignKey("badges.id"), primary_key=True),
)


class StudentProfile(Base):
    """Leaderboard entry: a display name, a score and showcased badges.

    Optionally linked to an account; scores are entered by coaches rather
    than derived from course progress.
    """

    __tablename__ = "student_profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    badges = relationship(
        "Badge", secondary=student_profile_badges, order_by="Badge.created_at"
    )

    def __repr__(self):
        return f"<StudentProfile {self.name} ({self.score})>"
