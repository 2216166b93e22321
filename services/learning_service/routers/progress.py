"""Student progress endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from libs.auth.dependencies import get_current_user, require_coach
from libs.auth.models import AuthUser
from libs.common.errors import ValidationFailed
from libs.db.session import get_async_db
from services.learning_service.schemas import (
    BadgeResponse,
    CompleteTaskRequest,
    CompleteTaskResponse,
    MarkSeenResponse,
    ProgressResponse,
    StudentOverviewResponse,
    SubmissionResponse,
    UserSummary,
)
from services.learning_service.services import progress_ops
from services.learning_service.services.storage import (
    StorageService,
    get_storage_service,
    staged_uploads,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/progress", tags=["progress"])


@router.post("/complete-task", response_model=CompleteTaskResponse)
async def complete_task(
    payload: CompleteTaskRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    progress, new_badges = await progress_ops.complete_task(
        db,
        user_id=current_user.user_id,
        course_id=payload.course_id,
        task_id=payload.task_id,
    )
    return CompleteTaskResponse(
        progress=ProgressResponse.from_record(progress),
        new_badges=[BadgeResponse.model_validate(b) for b in new_badges],
    )


@router.post("/submit-task", response_model=ProgressResponse)
async def submit_task(
    course_id: uuid.UUID = Form(...),
    task_id: uuid.UUID = Form(...),
    student_files: Optional[list[UploadFile]] = File(None),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Upload work for a task and flag it for coach review."""
    if not student_files:
        raise ValidationFailed("At least one file is required.")
    async with staged_uploads(storage, student_files) as uploads:
        progress = await progress_ops.submit_task(
            db,
            user_id=current_user.user_id,
            course_id=course_id,
            task_id=task_id,
            uploads=uploads,
        )
    return ProgressResponse.from_record(progress)


@router.get("/submissions/{course_id}", response_model=list[SubmissionResponse])
async def list_submissions(
    course_id: uuid.UUID,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    records = await progress_ops.list_submissions(
        db, coach_id=current_user.user_id, course_id=course_id
    )
    return [
        SubmissionResponse(
            student=UserSummary.model_validate(progress.user),
            progress=ProgressResponse.from_record(progress),
        )
        for progress in records
    ]


@router.get("/{course_id}", response_model=ProgressResponse)
async def get_progress(
    course_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """The caller's progress in a course; an empty summary before any activity."""
    progress = await progress_ops.get_progress(
        db, user_id=current_user.user_id, course_id=course_id
    )
    if progress is None:
        return ProgressResponse(course_id=course_id, user_id=current_user.user_id)
    return ProgressResponse.from_record(progress)


@router.patch("/{course_id}/mark-seen", response_model=MarkSeenResponse)
async def mark_seen(
    course_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    updated = await progress_ops.mark_seen(
        db, user_id=current_user.user_id, course_id=course_id
    )
    return MarkSeenResponse(updated=updated)


@router.get("/{course_id}/student/{student_id}", response_model=StudentOverviewResponse)
async def student_overview(
    course_id: uuid.UUID,
    student_id: uuid.UUID,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    rows, progress = await progress_ops.student_task_overview(
        db,
        coach_id=current_user.user_id,
        course_id=course_id,
        student_id=student_id,
    )
    return StudentOverviewResponse.build(
        course_id=course_id, student_id=student_id, rows=rows, progress=progress
    )
