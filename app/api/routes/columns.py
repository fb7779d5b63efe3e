import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import tasks as task_service
from app.core.identity import get_current_user
from app.core.notifications import enqueue_task_notifications
from app.db import crud
from app.db.session import get_db
from app.schemas.column import ColumnRead, ColumnUpdate
from app.schemas.task import TaskCreate, TaskRead
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/columns", tags=["columns"])


@router.patch("/{column_id}", response_model=ColumnRead)
async def update_column(
    column_id: int,
    data: ColumnUpdate,
    db: AsyncSession = Depends(get_db),
):
    title = data.title.strip()
    if not title:
        raise HTTPException(status_code=422, detail="Title is required")

    column = await crud.get_column(db, column_id)
    if not column:
        raise HTTPException(status_code=404, detail="Column not found")
    return await crud.update_column_title(db, column, title)


@router.post("/{column_id}/tasks", response_model=TaskRead, status_code=201)
async def create_task(
    request: Request,
    column_id: int,
    task_in: TaskCreate,
    db: AsyncSession = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Create a task at the end of the column and queue its notifications."""
    actor = (user.email or user.id) if user else None
    task = await task_service.create_task(db, column_id, task_in.model_dump(), actor)

    redis = getattr(request.app.state, "redis", None)
    await enqueue_task_notifications(redis, task, user.email if user else None)

    return task
