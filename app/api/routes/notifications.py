import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.core import calendar
from app.core.identity import get_current_user
from app.core.notifications import send_assignment_email
from app.schemas.notification import AssignmentEmailRequest, CalendarEventRequest
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["notifications"])


@router.post("/notifications/assignment-email")
async def assignment_email(body: AssignmentEmailRequest):
    """Send the one-time assignment notification for a new task."""
    if not body.email:
        return JSONResponse({"error": "Recipient email is required"}, status_code=400)

    try:
        await send_assignment_email(body.email, body.title, body.description, body.due_date)
    except Exception as e:
        logger.error(f"Error sending assignment email: {e}", exc_info=True)
        return JSONResponse(
            {"error": str(e) or "Failed to send assignment email"}, status_code=500
        )

    return {"success": True, "message": "Assignment email sent successfully."}


@router.post("/calendar/events")
async def create_calendar_events(
    body: CalendarEventRequest,
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Create the task event for the assignee and a free-time copy for the caller."""
    if user is None:
        return JSONResponse({"error": "Unauthorized - user not found."}, status_code=401)

    if not body.title or not body.due_date or not body.assignee_email:
        return JSONResponse(
            {"error": "Title, due date, and assignee email are required"}, status_code=400
        )

    if not user.email:
        return JSONResponse(
            {"error": "Could not retrieve creator's email address."}, status_code=500
        )

    status_code, payload = await calendar.create_task_events(
        body.title,
        body.description,
        body.due_date,
        body.assignee_email,
        user.email,
    )
    return JSONResponse(payload, status_code=status_code)
