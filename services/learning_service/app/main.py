"""FastAPI application for the Learning Service."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from libs.common.config import get_settings
from libs.common.errors import register_error_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.learning_service.routers import (
    badges_router,
    courses_router,
    groups_router,
    progress_router,
    skills_router,
    students_router,
    users_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the Learning Service FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Ping Gamify Learning Service",
        version="0.1.0",
        description="Courses, progress tracking, badges and study groups.",
        debug=settings.ENVIRONMENT == "local",
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Structured logging + request tracing
    add_observability_middleware(app)

    # Every failure renders as {"kind", "detail"}
    register_error_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "learning"}

    app.include_router(users_router)
    app.include_router(courses_router)
    app.include_router(skills_router)
    app.include_router(students_router)
    app.include_router(progress_router)
    app.include_router(badges_router)
    app.include_router(groups_router)

    return app


app = create_app()
