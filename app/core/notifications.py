import logging
from datetime import date
from typing import Optional

from app.core import mailer
from app.core.reminders import SendEmail
from app.db.models import Task

logger = logging.getLogger(__name__)


# --- Queue helpers (arq) --- #

async def redis_send_assignment_email(redis, task: Task):
    await redis.enqueue_job(
        "send_assignment_email",
        task.assignee,
        task.title,
        task.description,
        task.due_date.isoformat() if task.due_date else None,
    )

async def redis_create_calendar_events(redis, task: Task, creator_email: str):
    await redis.enqueue_job(
        "create_calendar_events",
        task.title,
        task.description,
        task.due_date.isoformat(),
        task.assignee,
        creator_email,
    )


async def enqueue_task_notifications(redis, task: Task, creator_email: Optional[str]) -> None:
    """Queue the one-shot side effects of creating a task. Best-effort."""
    if not task.assignee:
        return
    if redis is None:
        logger.warning(f"No job queue available; skipping notifications for task {task.id}")
        return

    try:
        await redis_send_assignment_email(redis, task)
    except Exception as e:
        logger.error(f"Failed to queue assignment email for task {task.id}: {e}", exc_info=True)

    if not task.due_date:
        return
    if not creator_email:
        logger.info(f"Creator has no email; skipping calendar events for task {task.id}")
        return
    try:
        await redis_create_calendar_events(redis, task, creator_email)
    except Exception as e:
        logger.error(f"Failed to queue calendar events for task {task.id}: {e}", exc_info=True)


# --- Delivery --- #

async def send_assignment_email(
    email: str,
    title: str,
    description: Optional[str] = None,
    due_date: Optional[date] = None,
    send: Optional[SendEmail] = None,
) -> None:
    """Send the one-time "you've been assigned" email. Raises on failure."""
    send = send or mailer.send_email
    subject, body = mailer.render_assignment_email(title, description, due_date)
    await send(email, subject, body)
