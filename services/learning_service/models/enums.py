"""Enum definitions for learning service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class UserRole(str, enum.Enum):
    STUDENT = "student"
    COACH = "coach"


class TaskContentType(str, enum.Enum):
    VIDEO = "video"
    PDF = "pdf"
    TEXT = "text"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class BadgeThresholdKind(str, enum.Enum):
    COMPLETED_TASKS = "completed_tasks"


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
