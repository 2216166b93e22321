"""Learning Service routers."""

from services.learning_service.routers.badges import router as badges_router
from services.learning_service.routers.courses import router as courses_router
from services.learning_service.routers.groups import router as groups_router
from services.learning_service.routers.progress import router as progress_router
from services.learning_service.routers.skills import router as skills_router
from services.learning_service.routers.students import router as students_router
from services.learning_service.routers.users import router as users_router

__all__ = [
    "badges_router",
    "courses_router",
    "groups_router",
    "progress_router",
    "skills_router",
    "students_router",
    "users_router",
]
