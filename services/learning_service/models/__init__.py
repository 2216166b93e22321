"""Learning service models package.

Re-exports every model and enum so callers can use
``from services.learning_service.models import X``.
"""

from services.learning_service.models.badge import Badge, UserBadge
from services.learning_service.models.catalog import Course, Skill, Task
from services.learning_service.models.enums import (
    ApprovalStatus,
    BadgeThresholdKind,
    InvitationStatus,
    TaskContentType,
    UserRole,
    enum_values,
)
from services.learning_service.models.group import (
    Group,
    GroupInvitation,
    GroupMember,
    GroupVideo,
)
from services.learning_service.models.message import CoachMessage
from services.learning_service.models.progress import (
    CompletedTask,
    ProgressRecord,
    TaskProgress,
    TaskUpload,
)
from services.learning_service.models.student import (
    StudentProfile,
    student_profile_badges,
)
from services.learning_service.models.user import User, course_enrollments

__all__ = [
    # Enums
    "ApprovalStatus",
    "BadgeThresholdKind",
    "InvitationStatus",
    "TaskContentType",
    "UserRole",
    "enum_values",
    # Users
    "User",
    "course_enrollments",
    # Catalog
    "Course",
    "Skill",
    "Task",
    # Progress
    "CompletedTask",
    "ProgressRecord",
    "TaskProgress",
    "TaskUpload",
    # Badges
    "Badge",
    "UserBadge",
    # Groups
    "Group",
    "GroupInvitation",
    "GroupMember",
    "GroupVideo",
    # Messages
    "CoachMessage",
    # Leaderboard
    "StudentProfile",
    "student_profile_badges",
]
