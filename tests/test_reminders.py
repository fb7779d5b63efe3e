# tests/test_reminders.py

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from app.core import reminders
from app.core import tasks as task_service
from app.db import crud
from app.db.base import utcnow
from app.db.models import Task

from .fakes import FakeMailer


async def _due_task(db, column_id: int, title: str, reminder: str, assignee="dev@example.com", **extra) -> Task:
    task = await task_service.create_task(
        db, column_id, {"title": title, "reminder": reminder, "assignee": assignee, **extra}
    )
    # Pretend the first fire time has already passed.
    return await crud.update_task(db, task, {"next_reminder_at": utcnow() - timedelta(seconds=5)})


async def _next_at(session_factory, task_id: int) -> datetime:
    async with session_factory() as s:
        return (await s.get(Task, task_id)).next_reminder_at


@pytest.mark.asyncio
async def test_each_due_task_gets_one_email_and_its_own_interval(db, board, session_factory) -> None:
    todo = board.columns["To Do"]
    quick = await _due_task(db, todo, "Quick", "15 min", assignee="a@example.com")
    hourly = await _due_task(db, board.columns["In Progress"], "Hourly", "1 hour", assignee="b@example.com")
    mailer = FakeMailer()
    now = utcnow()

    result = await reminders.send_due_reminders(db, send=mailer, now=now)

    assert result == {"success": True, "sent": 2, "message": "Sent 2 reminders."}
    assert len(mailer.to("a@example.com")) == 1
    assert len(mailer.to("b@example.com")) == 1

    quick_next = await _next_at(session_factory, quick.id)
    hourly_next = await _next_at(session_factory, hourly.id)
    assert quick_next == now + timedelta(minutes=15)
    assert hourly_next - quick_next == timedelta(minutes=45)


@pytest.mark.asyncio
async def test_second_pass_sends_nothing(db, board) -> None:
    await _due_task(db, board.columns["To Do"], "Once", "3 hour")
    mailer = FakeMailer()

    await reminders.send_due_reminders(db, send=mailer)
    result = await reminders.send_due_reminders(db, send=mailer)

    assert len(mailer.sent) == 1
    assert result["sent"] == 0
    assert result["message"] == "No reminders to send at this time."


@pytest.mark.asyncio
async def test_inactive_columns_are_ignored(db, board) -> None:
    task = await _due_task(db, board.columns["To Do"], "Finished", "15 min")
    await crud.update_task(db, task, {"column_id": board.columns["Done"]})
    mailer = FakeMailer()

    result = await reminders.send_due_reminders(db, send=mailer)

    assert result["sent"] == 0
    assert mailer.sent == []


@pytest.mark.asyncio
async def test_future_reminders_are_not_sent(db, board) -> None:
    await task_service.create_task(
        db, board.columns["To Do"], {"title": "Later", "reminder": "15 min", "assignee": "a@example.com"}
    )
    mailer = FakeMailer()
    result = await reminders.send_due_reminders(db, send=mailer)
    assert result["sent"] == 0


@pytest.mark.asyncio
async def test_overdue_variant(db, board) -> None:
    await _due_task(db, board.columns["To Do"], "Late", "15 min", due_date=date(2020, 5, 1))
    await _due_task(db, board.columns["To Do"], "Fine", "15 min", assignee="b@example.com", due_date=date(2999, 1, 1))
    mailer = FakeMailer()

    await reminders.send_due_reminders(db, send=mailer)

    (_, late_subject, late_body), = mailer.to("dev@example.com")
    (_, fine_subject, _), = mailer.to("b@example.com")
    assert late_subject == "🔥 OVERDUE: Late"
    assert "PAST its due date of 2020-05-01" in late_body
    assert fine_subject == "⏰ Reminder: Fine"


@pytest.mark.asyncio
async def test_unassigned_task_is_rescheduled_without_mail(db, board, session_factory) -> None:
    task = await _due_task(db, board.columns["To Do"], "Nobody", "1 hour", assignee=None)
    mailer = FakeMailer()
    now = utcnow()

    result = await reminders.send_due_reminders(db, send=mailer, now=now)

    assert result["sent"] == 0
    assert mailer.sent == []
    assert await _next_at(session_factory, task.id) == now + timedelta(hours=1)


@pytest.mark.asyncio
async def test_one_failed_delivery_does_not_stop_the_pass(db, board) -> None:
    await _due_task(db, board.columns["To Do"], "Broken", "15 min", assignee="bounce@example.com")
    await _due_task(db, board.columns["To Do"], "Works", "15 min", assignee="ok@example.com")
    mailer = FakeMailer(fail_for=("bounce@example.com",))

    result = await reminders.send_due_reminders(db, send=mailer)

    assert result["sent"] == 1
    assert len(mailer.to("ok@example.com")) == 1


@pytest.mark.asyncio
async def test_claim_fails_when_another_pass_got_there_first(db, board) -> None:
    task = await _due_task(db, board.columns["To Do"], "Contested", "15 min")
    seen = task.next_reminder_at
    now = utcnow()

    assert await crud.claim_reminder(db, task.id, seen, now + timedelta(minutes=15)) is True
    assert await crud.claim_reminder(db, task.id, seen, now + timedelta(minutes=15)) is False


@pytest.mark.asyncio
async def test_no_active_columns(db) -> None:
    result = await reminders.send_due_reminders(db, send=FakeMailer())
    assert result == {"success": True, "sent": 0, "message": "No active columns found."}


def test_interval_offsets() -> None:
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert reminders.next_reminder_time("15 min", now) == now + timedelta(minutes=15)
    assert reminders.next_reminder_time("1 hour", now) == now + timedelta(hours=1)
    assert reminders.next_reminder_time("3 hour", now) == now + timedelta(hours=3)
    with pytest.raises(ValueError):
        reminders.next_reminder_time("2 days", now)


def test_first_reminder_time() -> None:
    now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert reminders.first_reminder_time("none", now) is None
    assert reminders.first_reminder_time(None, now) is None
    assert reminders.first_reminder_time("3 hour", now) == now + timedelta(minutes=1)


def test_is_overdue() -> None:
    now = datetime(2026, 3, 10, 8, 0, tzinfo=timezone.utc)
    assert reminders.is_overdue(date(2026, 3, 9), now)
    assert reminders.is_overdue(date(2026, 3, 10), now)
    assert not reminders.is_overdue(date(2026, 3, 11), now)
    assert not reminders.is_overdue(None, now)
