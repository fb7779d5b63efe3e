import asyncio
import logging
import sys
import time
from datetime import date
from typing import Optional

from arq import cron, Worker
from arq.connections import RedisSettings

from app.core import calendar, config
from app.core.notifications import send_assignment_email as deliver_assignment_email
from app.core.reminders import send_due_reminders
from app.db.session import async_session

# Logging configuration
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)


def _parse_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


async def send_assignment_email(
    ctx, email: str, title: str, description: Optional[str], due_date: Optional[str]
):
    """Background job: one-shot assignment email. Failures are logged only."""
    try:
        await deliver_assignment_email(email, title, description, _parse_date(due_date))
        logger.info(f"✅ Assignment email for '{title}' sent to {email}")
    except Exception as e:
        logger.error(f"❌ Failed to send assignment email to {email}: {e}", exc_info=True)


async def create_calendar_events(
    ctx,
    title: str,
    description: Optional[str],
    due_date: str,
    assignee_email: str,
    creator_email: str,
):
    """Background job: calendar events for assignee and creator."""
    status_code, payload = await calendar.create_task_events(
        title, description, _parse_date(due_date), assignee_email, creator_email
    )
    if status_code == 200:
        logger.info(f"✅ Calendar events created for '{title}'")
    else:
        logger.warning(f"⚠️ Calendar events for '{title}' returned {status_code}: {payload}")
    return status_code


async def send_reminders(ctx):
    """Cron job: one recurring-reminder pass."""
    try:
        async with async_session() as db:
            result = await send_due_reminders(db)
        logger.info(result["message"])
        return result["sent"]
    except Exception as e:
        logger.error(f"❌ Reminder pass failed: {e}", exc_info=True)


async def worker_heartbeat(ctx):
    redis = ctx["redis"]
    await redis.set(
        "arq:heartbeat", str(time.time()), ex=120
    )  # expire in 120 seconds


class WorkerSettings:
    """Entry point for ``arq app.core.arq_worker.WorkerSettings``."""

    functions = [send_assignment_email, create_calendar_events]
    cron_jobs = [
        # unique=True keeps a slow pass from overlapping the next one
        cron(send_reminders, second=0, unique=True, run_at_startup=True),
        cron(worker_heartbeat, second=30),
    ]
    redis_settings = RedisSettings.from_dsn(config.REDIS_URL)
    keep_result = 0
    max_jobs = 5


async def run_worker_forever():
    """
    Resilient loop that keeps the ARQ worker running.
    Restarts worker on failure with exponential backoff.
    """
    backoff = 1
    while True:
        try:
            worker = Worker(
                functions=WorkerSettings.functions,
                redis_settings=WorkerSettings.redis_settings,
                cron_jobs=WorkerSettings.cron_jobs,
                keep_result=WorkerSettings.keep_result,
                max_jobs=WorkerSettings.max_jobs,
            )
            logger.info("🚀 Starting ARQ worker...")
            await worker.async_run()
        except asyncio.CancelledError:
            logger.warning("Worker shutdown triggered by CancelledError - safe to ignore.")
            raise
        except Exception as e:
            logger.error(f"💥 Worker crashed: {e}", exc_info=True)
            logger.info(f"Restarting worker in {backoff} seconds...")
            await asyncio.sleep(backoff)
            backoff = min(backoff * 2, 60)  # Max backoff 1 minute
        else:
            backoff = 1  # Reset backoff on clean exit


if __name__ == "__main__":
    try:
        asyncio.run(run_worker_forever())
    except KeyboardInterrupt:
        logger.info("Worker manually stopped.")
