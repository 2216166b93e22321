"""Course catalog, enrollment and coach review endpoints."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user, require_coach
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.learning_service.schemas import (
    CoachCourseResponse,
    CourseCreate,
    CourseDashboardResponse,
    CourseDetailResponse,
    CourseListItem,
    CourseResponse,
    CourseUpdate,
    MessageResponse,
    RateTaskRequest,
    ReviewTaskRequest,
    SkillResponse,
    StudentOverviewResponse,
    TaskProgressResponse,
)
from services.learning_service.services import catalog_ops, progress_ops
from services.learning_service.services.storage import (
    StorageService,
    get_storage_service,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("", response_model=list[CourseDetailResponse])
async def list_my_enrolled_courses(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Courses the caller is enrolled in, with skills and tasks."""
    return await catalog_ops.list_enrolled_courses(db, current_user.user_id)


@router.get("/all", response_model=list[CourseListItem])
async def list_all_courses(db: AsyncSession = Depends(get_async_db)):
    """Every course, for browsing."""
    return await catalog_ops.list_all_courses(db)


@router.get("/my-courses", response_model=list[CoachCourseResponse])
async def list_coach_courses(
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    rows = await catalog_ops.list_coach_courses(db, current_user.user_id)
    return [
        CoachCourseResponse(
            **CourseDetailResponse.model_validate(course).model_dump(),
            student_count=student_count,
        )
        for course, student_count in rows
    ]


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_ops.create_course(
        db,
        coach_id=current_user.user_id,
        name=payload.name,
        description=payload.description,
    )


@router.put("/{course_id}", response_model=CourseResponse)
async def update_course(
    course_id: uuid.UUID,
    payload: CourseUpdate,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_ops.update_course(
        db,
        coach_id=current_user.user_id,
        course_id=course_id,
        updates=payload.model_dump(exclude_unset=True),
    )


@router.delete("/{course_id}", response_model=MessageResponse)
async def delete_course(
    course_id: uuid.UUID,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
    storage: StorageService = Depends(get_storage_service),
):
    await catalog_ops.delete_course(
        db, coach_id=current_user.user_id, course_id=course_id, storage=storage
    )
    return MessageResponse(message="Course deleted successfully")


@router.post("/{course_id}/enroll", response_model=MessageResponse)
async def enroll(
    course_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await catalog_ops.enroll(db, user_id=current_user.user_id, course_id=course_id)
    return MessageResponse(message="Enrolled successfully")


@router.post("/{course_id}/unenroll", response_model=MessageResponse)
async def unenroll(
    course_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await catalog_ops.unenroll(db, user_id=current_user.user_id, course_id=course_id)
    return MessageResponse(message="Unenrolled successfully")


@router.get("/{course_id}/skills-with-tasks", response_model=list[SkillResponse])
async def skills_with_tasks(
    course_id: uuid.UUID,
    _user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_ops.list_skills(db, course_id)


@router.get("/{course_id}", response_model=CourseDetailResponse)
async def get_course(
    course_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """A single course; visible to its coach and enrolled users only."""
    return await catalog_ops.get_course(
        db, user_id=current_user.user_id, course_id=course_id
    )


# ---------------------------------------------------------------------------
# Coach views
# ---------------------------------------------------------------------------


@router.get("/{course_id}/dashboard", response_model=CourseDashboardResponse)
async def course_dashboard(
    course_id: uuid.UUID,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_ops.course_dashboard(
        db, coach_id=current_user.user_id, course_id=course_id
    )


@router.post("/{course_id}/rate-task", response_model=TaskProgressResponse)
async def rate_task(
    course_id: uuid.UUID,
    payload: RateTaskRequest,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    entry = await progress_ops.rate_task(
        db,
        coach_id=current_user.user_id,
        course_id=course_id,
        student_id=payload.student_id,
        task_id=payload.task_id,
        rating=payload.rating,
        feedback=payload.feedback,
    )
    return TaskProgressResponse.from_entry(entry)


@router.post("/{course_id}/review-task", response_model=TaskProgressResponse)
async def review_task(
    course_id: uuid.UUID,
    payload: ReviewTaskRequest,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    entry = await progress_ops.review_task(
        db,
        coach_id=current_user.user_id,
        course_id=course_id,
        student_id=payload.student_id,
        task_id=payload.task_id,
        approved=payload.approved,
        feedback=payload.feedback,
    )
    return TaskProgressResponse.from_entry(entry)


@router.get(
    "/{course_id}/student/{student_id}/progress",
    response_model=StudentOverviewResponse,
)
async def student_progress(
    course_id: uuid.UUID,
    student_id: uuid.UUID,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    """Every task of the course paired with the student's progress on it."""
    rows, progress = await progress_ops.student_task_overview(
        db,
        coach_id=current_user.user_id,
        course_id=course_id,
        student_id=student_id,
    )
    return StudentOverviewResponse.build(
        course_id=course_id, student_id=student_id, rows=rows, progress=progress
    )
