"""Skill and task management endpoints."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from libs.auth.dependencies import require_coach
from libs.auth.models import AuthUser
from libs.common.errors import ValidationFailed
from libs.db.session import get_async_db
from services.learning_service.schemas import (
    MessageResponse,
    SkillCreate,
    SkillResponse,
    SkillUpdate,
    TaskResponse,
    TaskUpdate,
)
from services.learning_service.services import catalog_ops
from services.learning_service.services.storage import (
    StorageService,
    get_storage_service,
    staged_uploads,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/skills", tags=["skills"])


def _parse_ids(raw: str) -> list[uuid.UUID]:
    try:
        return [uuid.UUID(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise ValidationFailed("Task IDs must be UUIDs") from None


@router.get("", response_model=list[SkillResponse])
async def list_skills(
    course_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_ops.list_skills(db, course_id)


@router.post("/add", response_model=SkillResponse, status_code=status.HTTP_201_CREATED)
async def create_skill(
    payload: SkillCreate,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_ops.create_skill(
        db,
        coach_id=current_user.user_id,
        course_id=payload.course_id,
        title=payload.title,
        description=payload.description,
    )


@router.get("/tasks/titles", response_model=dict[str, str])
async def task_titles(
    ids: str = Query(""),
    db: AsyncSession = Depends(get_async_db),
):
    """Map of task id to title for a comma separated ``ids`` list."""
    return await catalog_ops.task_titles(db, _parse_ids(ids))


@router.put("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: uuid.UUID,
    payload: TaskUpdate,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_ops.update_task(
        db,
        coach_id=current_user.user_id,
        task_id=task_id,
        updates=payload.model_dump(exclude_unset=True),
    )


@router.delete("/tasks/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: uuid.UUID,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
    storage: StorageService = Depends(get_storage_service),
):
    await catalog_ops.delete_task(
        db, coach_id=current_user.user_id, task_id=task_id, storage=storage
    )
    return MessageResponse(message="Task deleted successfully")


@router.post(
    "/{skill_id}/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    skill_id: uuid.UUID,
    title: str = Form(""),
    deadline: Optional[datetime] = Form(None),
    task_content: Optional[list[UploadFile]] = File(None),
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
    storage: StorageService = Depends(get_storage_service),
):
    """Create a task from one or more uploaded content files."""
    if not task_content:
        raise ValidationFailed("At least one task content file is required.")
    async with staged_uploads(storage, task_content) as files:
        return await catalog_ops.create_task(
            db,
            coach_id=current_user.user_id,
            skill_id=skill_id,
            title=title,
            files=files,
            deadline=deadline,
        )


@router.put("/{skill_id}", response_model=SkillResponse)
async def update_skill(
    skill_id: uuid.UUID,
    payload: SkillUpdate,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
):
    return await catalog_ops.update_skill(
        db,
        coach_id=current_user.user_id,
        skill_id=skill_id,
        updates=payload.model_dump(exclude_unset=True),
    )


@router.delete("/{skill_id}", response_model=MessageResponse)
async def delete_skill(
    skill_id: uuid.UUID,
    current_user: AuthUser = Depends(require_coach),
    db: AsyncSession = Depends(get_async_db),
    storage: StorageService = Depends(get_storage_service),
):
    await catalog_ops.delete_skill(
        db, coach_id=current_user.user_id, skill_id=skill_id, storage=storage
    )
    return MessageResponse(message="Skill and associated tasks deleted successfully")
