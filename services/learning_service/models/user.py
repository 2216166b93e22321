import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.learning_service.models.enums import UserRole, enum_values
from sqlalchemy import Column, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# Shared by Course.students and User.enrolled_courses, so one row is both
# sides of an enrollment.
course_enrollments = Table(
    "course_enrollments",
    Base.metadata,
    Column("course_id", Uuid, ForeignKey("courses.id"), primary_key=True),
    Column("user_id", Uuid, ForeignKey("users.id"), primary_key=True),
    Column("enrolled_at", DateTime(timezone=True), default=utc_now),
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(
            UserRole,
            name="user_role_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=UserRole.STUDENT,
        nullable=False,
    )

    # PBKDF2-HMAC-SHA256, hex encoded
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    password_salt: Mapped[str] = mapped_column(String, nullable=False)

    # Free-text coaching affiliation; empty when unset
    group_label: Mapped[str] = mapped_column(
        String, default="", server_default="", nullable=False
    )
    section_label: Mapped[str] = mapped_column(
        String, default="", server_default="", nullable=False
    )

    # Only the digest of an outstanding reset token is stored
    reset_token_hash: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    reset_token_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    enrolled_courses = relationship(
        "Course", secondary=course_enrollments, back_populates="students"
    )
    badges = relationship("UserBadge", back_populates="user")

    def __repr__(self):
        return f"<User {self.email} ({self.role.value})>"
