# tests/test_task_service.py

from __future__ import annotations

from datetime import date, timedelta

import pytest

from app.core import tasks as task_service
from app.core.errors import Forbidden, NotFound, Unauthorized, ValidationError
from app.db import crud
from app.db.base import utcnow
from app.db.models import Task

from .conftest import ADMIN, MEMBER


def _approx(value, expected, tolerance=timedelta(seconds=10)) -> bool:
    return value is not None and abs(value - expected) <= tolerance


async def _reload(session_factory, task_id: int) -> Task:
    async with session_factory() as s:
        return await s.get(Task, task_id)


async def _task_in(db, board, column: str, reminder: str = "15 min", title: str = "Write docs") -> Task:
    """Create in To Do, then place the row directly in ``column``."""
    task = await task_service.create_task(
        db, board.columns["To Do"], {"title": title, "reminder": reminder, "assignee": "dev@example.com"}
    )
    if column != "To Do":
        task = await crud.update_task(db, task, {"column_id": board.columns[column]})
    return task


# ============================================================
# create
# ============================================================

@pytest.mark.asyncio
async def test_create_with_reminder_fires_in_one_minute(db, board) -> None:
    before = utcnow()
    task = await task_service.create_task(
        db, board.columns["To Do"], {"title": "Ship it", "reminder": "1 hour"}
    )
    assert _approx(task.next_reminder_at, before + timedelta(minutes=1))
    assert task.priority == "medium"


@pytest.mark.asyncio
async def test_create_without_reminder_has_no_schedule(db, board) -> None:
    task = await task_service.create_task(db, board.columns["To Do"], {"title": "Quiet"})
    assert task.reminder == "none"
    assert task.next_reminder_at is None


@pytest.mark.asyncio
async def test_create_appends_to_end_of_column(db, board) -> None:
    col = board.columns["To Do"]
    first = await task_service.create_task(db, col, {"title": "one"})
    second = await task_service.create_task(db, col, {"title": "two"})
    assert (first.sort_order, second.sort_order) == (0, 1)


@pytest.mark.asyncio
async def test_create_writes_history(db, board) -> None:
    task = await task_service.create_task(db, board.columns["To Do"], {"title": "t"}, actor="admin@example.com")
    history = await crud.get_task_history(db, task.id)
    assert [h.change_description for h in history] == ["Task created"]
    assert history[0].changed_by == "admin@example.com"


@pytest.mark.asyncio
async def test_create_requires_title(db, board) -> None:
    with pytest.raises(ValidationError):
        await task_service.create_task(db, board.columns["To Do"], {"title": "   "})


@pytest.mark.asyncio
async def test_create_in_unknown_column(db, board) -> None:
    with pytest.raises(NotFound):
        await task_service.create_task(db, 9999, {"title": "lost"})


# ============================================================
# update
# ============================================================

@pytest.mark.asyncio
async def test_update_requires_authenticated_user(db, board) -> None:
    task = await _task_in(db, board, "To Do")
    with pytest.raises(Unauthorized):
        await task_service.update_task(db, task.id, {"title": "x"}, None)


@pytest.mark.asyncio
async def test_update_requires_elevated_role(db, board) -> None:
    task = await _task_in(db, board, "To Do")
    with pytest.raises(Forbidden):
        await task_service.update_task(db, task.id, {"title": "x"}, MEMBER)


@pytest.mark.asyncio
async def test_superadmin_can_update(db, board) -> None:
    task = await _task_in(db, board, "To Do")
    boss = MEMBER.model_copy(update={"role": "superadmin"})
    updated = await task_service.update_task(db, task.id, {"priority": "high"}, boss)
    assert updated.priority == "high"


@pytest.mark.asyncio
async def test_update_unknown_task(db, board) -> None:
    with pytest.raises(NotFound):
        await task_service.update_task(db, 4242, {"title": "x"}, ADMIN)


@pytest.mark.asyncio
async def test_changing_due_date_resets_schedule(db, board, session_factory) -> None:
    task = await _task_in(db, board, "In Progress")
    await crud.update_task(db, task, {"next_reminder_at": utcnow() + timedelta(hours=2)})

    before = utcnow()
    await task_service.update_task(db, task.id, {"due_date": date(2030, 1, 1)}, ADMIN)

    stored = await _reload(session_factory, task.id)
    assert stored.due_date == date(2030, 1, 1)
    assert _approx(stored.next_reminder_at, before + timedelta(minutes=1))


@pytest.mark.asyncio
async def test_turning_reminder_off_clears_schedule(db, board, session_factory) -> None:
    task = await _task_in(db, board, "To Do")
    await task_service.update_task(db, task.id, {"reminder": "none"}, ADMIN)
    assert (await _reload(session_factory, task.id)).next_reminder_at is None


@pytest.mark.asyncio
async def test_due_date_change_in_inactive_column_stays_cleared(db, board, session_factory) -> None:
    task = await _task_in(db, board, "Done")
    await task_service.update_task(db, task.id, {"due_date": date(2030, 1, 1)}, ADMIN)
    assert (await _reload(session_factory, task.id)).next_reminder_at is None


@pytest.mark.asyncio
async def test_title_change_leaves_schedule_alone(db, board, session_factory) -> None:
    task = await _task_in(db, board, "To Do")
    scheduled = task.next_reminder_at
    await task_service.update_task(db, task.id, {"title": "Renamed"}, ADMIN)

    stored = await _reload(session_factory, task.id)
    assert stored.title == "Renamed"
    assert stored.next_reminder_at == scheduled

    history = await crud.get_task_history(db, task.id)
    assert history[0].change_description == "Updated title"
    assert history[0].changed_by == ADMIN.email


# ============================================================
# move
# ============================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("source", ["In Progress", "Review", "Done"])
async def test_moving_back_to_todo_is_rejected(db, board, session_factory, source) -> None:
    task = await _task_in(db, board, source)

    moved, _ = await task_service.move_task(db, task.id, board.columns["To Do"], 0)

    assert moved is False
    stored = await _reload(session_factory, task.id)
    assert stored.column_id == board.columns[source]


@pytest.mark.asyncio
async def test_moving_into_active_set_restarts_reminders(db, board, session_factory) -> None:
    task = await _task_in(db, board, "Review")
    await crud.update_task(db, task, {"next_reminder_at": None})

    before = utcnow()
    moved, _ = await task_service.move_task(db, task.id, board.columns["In Progress"], 0)

    assert moved is True
    stored = await _reload(session_factory, task.id)
    assert stored.column_id == board.columns["In Progress"]
    assert _approx(stored.next_reminder_at, before + timedelta(minutes=1))


@pytest.mark.asyncio
async def test_moving_to_done_stops_reminders(db, board, session_factory) -> None:
    task = await _task_in(db, board, "In Progress")
    assert task.next_reminder_at is not None

    moved, _ = await task_service.move_task(db, task.id, board.columns["Done"], 0)

    assert moved is True
    assert (await _reload(session_factory, task.id)).next_reminder_at is None


@pytest.mark.asyncio
async def test_move_within_active_set_keeps_schedule(db, board, session_factory) -> None:
    task = await _task_in(db, board, "To Do")
    scheduled = utcnow() + timedelta(minutes=42)
    await crud.update_task(db, task, {"next_reminder_at": scheduled})

    await task_service.move_task(db, task.id, board.columns["In Progress"], 0)

    stored = await _reload(session_factory, task.id)
    assert stored.next_reminder_at == scheduled


@pytest.mark.asyncio
async def test_move_without_reminder_never_schedules(db, board, session_factory) -> None:
    task = await _task_in(db, board, "Review", reminder="none")
    await task_service.move_task(db, task.id, board.columns["In Progress"], 0)
    assert (await _reload(session_factory, task.id)).next_reminder_at is None


@pytest.mark.asyncio
async def test_move_keeps_positions_dense(db, board, session_factory) -> None:
    todo, doing = board.columns["To Do"], board.columns["In Progress"]
    a = await task_service.create_task(db, todo, {"title": "a"})
    b = await task_service.create_task(db, todo, {"title": "b"})
    c = await task_service.create_task(db, todo, {"title": "c"})
    x = await task_service.create_task(db, doing, {"title": "x"})

    await task_service.move_task(db, b.id, doing, 0)

    async with session_factory() as s:
        todo_tasks = await crud.get_column_tasks(s, todo)
        doing_tasks = await crud.get_column_tasks(s, doing)
    assert [(t.id, t.sort_order) for t in todo_tasks] == [(a.id, 0), (c.id, 1)]
    assert [(t.id, t.sort_order) for t in doing_tasks] == [(b.id, 0), (x.id, 1)]


@pytest.mark.asyncio
async def test_reorder_within_column_and_clamp_index(db, board, session_factory) -> None:
    todo = board.columns["To Do"]
    a = await task_service.create_task(db, todo, {"title": "a"})
    b = await task_service.create_task(db, todo, {"title": "b"})

    moved, _ = await task_service.move_task(db, a.id, todo, 99)

    assert moved is True
    async with session_factory() as s:
        ids = [t.id for t in await crud.get_column_tasks(s, todo)]
    assert ids == [b.id, a.id]


@pytest.mark.asyncio
async def test_move_records_history(db, board) -> None:
    task = await _task_in(db, board, "To Do")
    await task_service.move_task(db, task.id, board.columns["Review"], 0, actor="lead@example.com")

    history = await crud.get_task_history(db, task.id)
    assert history[0].change_description == "Moved from 'To Do' to 'Review'"
    assert history[0].changed_by == "lead@example.com"


@pytest.mark.asyncio
async def test_move_across_boards_is_invalid(db, board) -> None:
    other = await crud.create_board_with_default_columns(db, title="Other", user_id=ADMIN.id)
    task = await _task_in(db, board, "To Do")
    with pytest.raises(ValidationError):
        await task_service.move_task(db, task.id, other.columns[1].id, 0)


def test_disallowed_move_rules() -> None:
    assert task_service.is_disallowed_move("Done", "To Do")
    assert task_service.is_disallowed_move("Review", "To Do")
    assert not task_service.is_disallowed_move("To Do", "To Do")
    assert not task_service.is_disallowed_move("Backlog", "To Do")
    assert not task_service.is_disallowed_move("Done", "In Progress")
