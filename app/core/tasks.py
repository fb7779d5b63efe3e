import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound, ValidationError
from app.core.identity import require_editor
from app.core.reminders import first_reminder_time, reminder_enabled
from app.db import crud
from app.db.base import utcnow
from app.db.models import BoardColumn, Task
from app.db.models.column import ACTIVE_COLUMN_TITLES, INACTIVE_COLUMN_TITLES
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

# Once work has started a task never goes back to the backlog.
NO_RETURN_TO_TODO_FROM = ("In Progress", "Review", "Done")

EDITABLE_FIELDS = ("title", "description", "assignee", "due_date", "priority", "reminder")

_UNCHANGED = object()


def is_disallowed_move(source_title: str, target_title: str) -> bool:
    return target_title == "To Do" and source_title in NO_RETURN_TO_TODO_FROM


def reminder_after_move(
    source_title: str,
    target_title: str,
    reminder: Optional[str],
    now: Optional[datetime] = None,
):
    """
    New ``next_reminder_at`` for a task crossing between lanes.

    Entering the active set restarts the cycle, entering the inactive set
    stops it. Any other move returns ``_UNCHANGED``.
    """
    if not reminder_enabled(reminder):
        return _UNCHANGED
    if target_title in ACTIVE_COLUMN_TITLES and source_title not in ACTIVE_COLUMN_TITLES:
        return first_reminder_time(reminder, now)
    if target_title in INACTIVE_COLUMN_TITLES and source_title not in INACTIVE_COLUMN_TITLES:
        return None
    return _UNCHANGED


async def _get_column_or_404(db: AsyncSession, column_id: int) -> BoardColumn:
    column = await crud.get_column(db, column_id)
    if not column:
        raise NotFound("Column not found")
    return column


async def _get_task_or_404(db: AsyncSession, task_id: int) -> Task:
    task = await crud.get_task(db, task_id)
    if not task:
        raise NotFound("Task not found")
    return task


async def create_task(
    db: AsyncSession,
    column_id: int,
    fields: dict,
    actor: Optional[str] = None,
) -> Task:
    """Append a new task to the end of ``column_id``."""
    title = (fields.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required")

    await _get_column_or_404(db, column_id)
    existing = await crud.get_column_tasks(db, column_id)
    reminder = fields.get("reminder") or "none"

    task = await crud.create_task(
        db,
        {
            "column_id": column_id,
            "title": title,
            "description": fields.get("description") or None,
            "assignee": fields.get("assignee") or None,
            "due_date": fields.get("due_date"),
            "priority": fields.get("priority") or "medium",
            "reminder": reminder,
            "next_reminder_at": first_reminder_time(reminder),
            "sort_order": len(existing),
        },
    )
    await crud.add_history(db, task.id, "Task created", actor)
    logger.info(f"Created task {task.id} in column {column_id}")
    return task


async def update_task(
    db: AsyncSession,
    task_id: int,
    fields: dict,
    user: Optional[CurrentUser],
) -> Task:
    user = require_editor(user)
    task = await _get_task_or_404(db, task_id)

    if "title" in fields and not (fields["title"] or "").strip():
        raise ValidationError("Title cannot be empty")

    changes = {
        k: v for k, v in fields.items()
        if k in EDITABLE_FIELDS and getattr(task, k) != v
    }
    if not changes:
        return task

    if "due_date" in changes or "reminder" in changes:
        # Reset the schedule; it restarts only where reminders can fire.
        reminder = changes.get("reminder", task.reminder)
        column = await _get_column_or_404(db, task.column_id)
        changes["next_reminder_at"] = (
            first_reminder_time(reminder) if column.is_active else None
        )

    task = await crud.update_task(db, task, changes)
    changed = ", ".join(k for k in EDITABLE_FIELDS if k in changes)
    await crud.add_history(db, task.id, f"Updated {changed}", user.email or user.id)
    return task


async def move_task(
    db: AsyncSession,
    task_id: int,
    target_column_id: int,
    target_index: int,
    actor: Optional[str] = None,
) -> Tuple[bool, Task]:
    """
    Move a task to ``target_index`` within ``target_column_id``.

    Returns ``(accepted, task)``. A move back into "To Do" from a later lane
    is refused without persisting anything.
    """
    task = await _get_task_or_404(db, task_id)
    target = await _get_column_or_404(db, target_column_id)
    source = await _get_column_or_404(db, task.column_id)

    if source.board_id != target.board_id:
        raise ValidationError("Tasks cannot move between boards")

    if is_disallowed_move(source.title, target.title):
        logger.warning(f"Tasks in '{source.title}' cannot be moved back to '{target.title}'")
        return False, task

    siblings = [t.id for t in await crud.get_column_tasks(db, target.id) if t.id != task.id]
    index = max(0, min(target_index, len(siblings)))
    if source.id == target.id and task.sort_order == index:
        return True, task

    extra = {}
    next_at = reminder_after_move(source.title, target.title, task.reminder, utcnow())
    if next_at is not _UNCHANGED:
        extra["next_reminder_at"] = next_at

    task = await crud.move_task(db, task, target.id, index, extra)
    if source.id != target.id:
        await crud.add_history(
            db, task.id, f"Moved from '{source.title}' to '{target.title}'", actor
        )
    return True, task
