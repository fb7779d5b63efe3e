import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.reminders import send_due_reminders
from app.db.session import get_db
from app.schemas.notification import ReminderRunResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cron", tags=["cron"])


@router.get("/send-reminders", response_model=ReminderRunResult)
async def send_reminders(
    db: AsyncSession = Depends(get_db),
    x_cron_secret: Optional[str] = Header(default=None),
):
    """Run one recurring-reminder pass. Meant for an external scheduler."""
    if config.CRON_SECRET and x_cron_secret != config.CRON_SECRET:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)

    try:
        return await send_due_reminders(db)
    except Exception as e:
        logger.error(f"Cron job failed: {e}", exc_info=True)
        return JSONResponse({"error": str(e)}, status_code=500)
