"""Learning Service schemas package.

Re-exports every schema so routers can import from
``services.learning_service.schemas`` directly.
"""

from services.learning_service.schemas.badge import (  # noqa: F401
    BadgeCreate,
    BadgeResponse,
    UserBadgeResponse,
)
from services.learning_service.schemas.catalog import (  # noqa: F401
    CoachCourseResponse,
    CourseCreate,
    CourseDetailResponse,
    CourseListItem,
    CourseResponse,
    CourseUpdate,
    SkillCreate,
    SkillResponse,
    SkillUpdate,
    TaskResponse,
    TaskUpdate,
)
from services.learning_service.schemas.group import (  # noqa: F401
    AssignCoachRequest,
    GroupCreate,
    GroupInvitationResponse,
    GroupResponse,
    GroupVideoResponse,
    InviteRequest,
    PendingInvitationResponse,
    RemoveMemberRequest,
    RespondRequest,
    VideoCreate,
)
from services.learning_service.schemas.progress import (  # noqa: F401
    CompleteTaskRequest,
    CompleteTaskResponse,
    CourseDashboardResponse,
    MarkSeenResponse,
    ProgressResponse,
    RateTaskRequest,
    ReviewTaskRequest,
    StudentOverviewResponse,
    StudentTaskRow,
    SubmissionResponse,
    TaskProgressResponse,
)
from services.learning_service.schemas.student import (  # noqa: F401
    StudentCreate,
    StudentResponse,
)
from services.learning_service.schemas.user import (  # noqa: F401
    AffiliationsResponse,
    CoachMessageCreate,
    CoachMessageResponse,
    JoinAffiliationRequest,
    JoinAffiliationResponse,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    UserProfileResponse,
    UserProfileUpdate,
    UserRegisterRequest,
    UserSummary,
)
