import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core import mailer
from app.db import crud
from app.db.base import utcnow

logger = logging.getLogger(__name__)

REMINDER_OFFSETS = {
    "15 min": timedelta(minutes=15),
    "1 hour": timedelta(hours=1),
    "3 hour": timedelta(hours=3),
}

# A freshly (re)activated reminder fires almost immediately to start the cycle.
FIRST_REMINDER_DELAY = timedelta(minutes=1)

SendEmail = Callable[[str, str, str], Awaitable[None]]


def reminder_enabled(reminder: Optional[str]) -> bool:
    return bool(reminder) and reminder != "none"


def first_reminder_time(reminder: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    if not reminder_enabled(reminder):
        return None
    return (now or utcnow()) + FIRST_REMINDER_DELAY


def next_reminder_time(reminder: str, now: Optional[datetime] = None) -> datetime:
    """Next fire time for a recurring reminder, counted from ``now``."""
    try:
        offset = REMINDER_OFFSETS[reminder]
    except KeyError:
        raise ValueError(f"Unknown reminder interval: {reminder!r}")
    return (now or utcnow()) + offset


def is_overdue(due_date: Optional[date], now: datetime) -> bool:
    # A bare date is taken as midnight UTC on that day.
    if due_date is None:
        return False
    return now > datetime.combine(due_date, time.min, tzinfo=timezone.utc)


async def send_due_reminders(
    db: AsyncSession,
    send: Optional[SendEmail] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Run one reminder pass over every task in an active column.

    Each due task is claimed (its next fire time advanced) before mail goes
    out, so overlapping passes cannot both pick it up. A failure on one task
    is logged and the pass moves on. Errors from the initial query propagate.
    """
    send = send or mailer.send_email
    now = now or utcnow()

    column_ids = await crud.get_active_column_ids(db)
    if not column_ids:
        return {"success": True, "sent": 0, "message": "No active columns found."}

    tasks = await crud.get_due_reminder_tasks(db, column_ids, now)
    if not tasks:
        return {"success": True, "sent": 0, "message": "No reminders to send at this time."}

    # Plain snapshots: a rollback below would expire the ORM instances.
    due = [
        {
            "id": t.id,
            "title": t.title,
            "description": t.description,
            "assignee": t.assignee,
            "due_date": t.due_date,
            "reminder": t.reminder,
            "next_reminder_at": t.next_reminder_at,
        }
        for t in tasks
    ]

    sent = 0
    for task in due:
        try:
            next_at = next_reminder_time(task["reminder"], now)
            claimed = await crud.claim_reminder(db, task["id"], task["next_reminder_at"], next_at)
        except Exception as e:
            logger.error(f"Could not reschedule reminder for task {task['id']}: {e}", exc_info=True)
            await db.rollback()
            continue

        if not claimed:
            logger.info(f"Reminder for task {task['id']} already claimed by another pass")
            continue
        if not task["assignee"]:
            continue

        subject, body = mailer.render_reminder_email(
            task["title"],
            task["description"],
            task["due_date"],
            overdue=is_overdue(task["due_date"], now),
        )
        try:
            await send(task["assignee"], subject, body)
        except Exception as e:
            logger.error(f"❌ Failed to send reminder for task {task['id']}: {e}", exc_info=True)
            continue

        logger.info(
            f"Sent reminder for task: {task['title']}. Next is at {mailer.format_timestamp(next_at)}"
        )
        sent += 1

    return {"success": True, "sent": sent, "message": f"Sent {sent} reminders."}
