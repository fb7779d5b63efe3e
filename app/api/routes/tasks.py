import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import tasks as task_service
from app.core.identity import get_current_user
from app.db import crud
from app.db.session import get_db
from app.schemas.task import TaskHistoryRead, TaskMove, TaskMoveResult, TaskRead, TaskUpdate
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

# Fields that may be cleared by sending an explicit null.
NULLABLE_FIELDS = ("description", "assignee", "due_date")


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    updates: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Partial update; admins and superadmins only."""
    fields = {
        k: v
        for k, v in updates.model_dump(exclude_unset=True).items()
        if v is not None or k in NULLABLE_FIELDS
    }
    return await task_service.update_task(db, task_id, fields, user)


@router.post("/{task_id}/move", response_model=TaskMoveResult)
async def move_task(
    task_id: int,
    move: TaskMove,
    db: AsyncSession = Depends(get_db),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    actor = (user.email or user.id) if user else None
    moved, task = await task_service.move_task(db, task_id, move.column_id, move.index, actor)
    return {"moved": moved, "task": task}


@router.get("/{task_id}/history", response_model=List[TaskHistoryRead])
async def task_history(
    task_id: int,
    db: AsyncSession = Depends(get_db),
):
    if not await crud.get_task(db, task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return await crud.get_task_history(db, task_id)
