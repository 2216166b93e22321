import uuid
from datetime import datetime

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class CoachMessage(Base):
    """A coach's broadcast to everyone in a group/section pair."""

    __tablename__ = "coach_messages"
    __table_args__ = (
        Index("ix_coach_messages_group_section", "group_label", "section_label"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False
    )
    group_label: Mapped[str] = mapped_column(String, nullable=False)
    section_label: Mapped[str] = mapped_column(String, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    sender = relationship("User")

    def __repr__(self):
        return f"<CoachMessage {self.group_label}/{self.section_label}>"
