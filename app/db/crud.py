from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db.models import Board, BoardColumn, Task, TaskHistory
from app.db.models.board import DEFAULT_BOARD_COLOR
from app.db.models.column import ACTIVE_COLUMN_TITLES, DEFAULT_COLUMN_TITLES


# --- Boards --- #

async def create_board_with_default_columns(
    db: AsyncSession,
    title: str,
    user_id: str,
    description: Optional[str] = None,
    color: Optional[str] = None,
) -> Board:
    board = Board(
        title=title,
        description=description,
        color=color or DEFAULT_BOARD_COLOR,
        user_id=user_id,
    )
    db.add(board)
    await db.flush()

    db.add_all(
        [
            BoardColumn(board_id=board.id, title=col_title, sort_order=i, user_id=user_id)
            for i, col_title in enumerate(DEFAULT_COLUMN_TITLES)
        ]
    )
    await db.commit()
    return await get_board_with_columns(db, board.id)


async def get_boards(db: AsyncSession, user_id: str) -> Sequence[Board]:
    result = await db.execute(
        select(Board).where(Board.user_id == user_id).order_by(Board.created_at.desc(), Board.id.desc())
    )
    return result.scalars().all()


async def get_board(db: AsyncSession, board_id: int) -> Optional[Board]:
    return await db.get(Board, board_id)


async def get_board_with_columns(db: AsyncSession, board_id: int) -> Optional[Board]:
    """Board plus its columns and their tasks, both in sort order."""
    result = await db.execute(
        select(Board)
        .where(Board.id == board_id)
        .options(selectinload(Board.columns).selectinload(BoardColumn.tasks))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def update_board(db: AsyncSession, board: Board, fields: dict) -> Board:
    for field, value in fields.items():
        setattr(board, field, value)
    await db.commit()
    await db.refresh(board)
    return board


# --- Columns --- #

async def get_column(db: AsyncSession, column_id: int) -> Optional[BoardColumn]:
    return await db.get(BoardColumn, column_id)


async def get_board_columns(db: AsyncSession, board_id: int) -> Sequence[BoardColumn]:
    result = await db.execute(
        select(BoardColumn)
        .where(BoardColumn.board_id == board_id)
        .order_by(BoardColumn.sort_order)
    )
    return result.scalars().all()


async def create_column(
    db: AsyncSession, board_id: int, title: str, user_id: Optional[str] = None
) -> BoardColumn:
    existing = await get_board_columns(db, board_id)
    column = BoardColumn(
        board_id=board_id, title=title, sort_order=len(existing), user_id=user_id
    )
    db.add(column)
    await db.commit()
    await db.refresh(column)
    return column


async def update_column_title(db: AsyncSession, column: BoardColumn, title: str) -> BoardColumn:
    column.title = title
    await db.commit()
    await db.refresh(column)
    return column


async def get_active_column_ids(db: AsyncSession) -> List[int]:
    result = await db.execute(
        select(BoardColumn.id).where(BoardColumn.title.in_(ACTIVE_COLUMN_TITLES))
    )
    return list(result.scalars().all())


# --- Tasks --- #

async def get_task(db: AsyncSession, task_id: int) -> Optional[Task]:
    return await db.get(Task, task_id)


async def get_column_tasks(db: AsyncSession, column_id: int) -> Sequence[Task]:
    result = await db.execute(
        select(Task).where(Task.column_id == column_id).order_by(Task.sort_order, Task.id)
    )
    return result.scalars().all()


async def create_task(db: AsyncSession, fields: dict) -> Task:
    task = Task(**fields)
    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


async def update_task(db: AsyncSession, task: Task, fields: dict) -> Task:
    for field, value in fields.items():
        setattr(task, field, value)
    await db.commit()
    await db.refresh(task)
    return task


def _renumber(tasks: Iterable[Task]) -> None:
    for i, t in enumerate(tasks):
        t.sort_order = i


async def move_task(
    db: AsyncSession,
    task: Task,
    column_id: int,
    index: int,
    extra_fields: Optional[dict] = None,
) -> Task:
    """Place ``task`` at ``index`` in ``column_id`` and keep both lanes densely ordered.

    Column change, positions and any ``extra_fields`` go out in one commit.
    """
    source_id = task.column_id

    target = [t for t in await get_column_tasks(db, column_id) if t.id != task.id]
    index = max(0, min(index, len(target)))
    target.insert(index, task)
    task.column_id = column_id
    _renumber(target)

    if source_id != column_id:
        source = [t for t in await get_column_tasks(db, source_id) if t.id != task.id]
        _renumber(source)

    for field, value in (extra_fields or {}).items():
        setattr(task, field, value)

    await db.commit()
    await db.refresh(task)
    return task


async def get_due_reminder_tasks(
    db: AsyncSession, column_ids: List[int], now: datetime
) -> Sequence[Task]:
    if not column_ids:
        return []
    result = await db.execute(
        select(Task)
        .where(
            Task.column_id.in_(column_ids),
            Task.reminder != "none",
            Task.next_reminder_at.isnot(None),
            Task.next_reminder_at <= now,
        )
        .order_by(Task.next_reminder_at, Task.id)
    )
    return result.scalars().all()


async def claim_reminder(
    db: AsyncSession, task_id: int, seen: datetime, next_at: datetime
) -> bool:
    """Compare-and-set ``next_reminder_at`` from ``seen`` to ``next_at``.

    Returns False when another pass already moved it on.
    """
    result = await db.execute(
        update(Task)
        .where(Task.id == task_id, Task.next_reminder_at == seen)
        .values(next_reminder_at=next_at)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount == 1


# --- History --- #

async def add_history(
    db: AsyncSession, task_id: int, description: str, actor: Optional[str] = None
) -> TaskHistory:
    entry = TaskHistory(task_id=task_id, change_description=description, changed_by=actor)
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


async def get_task_history(db: AsyncSession, task_id: int) -> Sequence[TaskHistory]:
    result = await db.execute(
        select(TaskHistory)
        .where(TaskHistory.task_id == task_id)
        .order_by(TaskHistory.changed_at.desc(), TaskHistory.id.desc())
    )
    return result.scalars().all()
