import logging
from datetime import date
from typing import Optional, Tuple

import httpx

from app.core import config

logger = logging.getLogger(__name__)


class CalendarTokenError(Exception):
    pass


async def acquire_app_token(client: httpx.AsyncClient) -> str:
    """Application-level token via the OAuth client-credentials grant."""
    res = await client.post(
        f"https://login.microsoftonline.com/{config.AZURE_AD_TENANT_ID}/oauth2/v2.0/token",
        data={
            "grant_type": "client_credentials",
            "client_id": config.AZURE_AD_CLIENT_ID,
            "client_secret": config.AZURE_AD_CLIENT_SECRET,
            "scope": config.GRAPH_SCOPE,
        },
    )
    if res.status_code != 200:
        raise CalendarTokenError(f"Token endpoint returned {res.status_code}")
    token = res.json().get("access_token")
    if not token:
        raise CalendarTokenError("Could not acquire access token")
    return token


async def create_graph_event(
    client: httpx.AsyncClient, access_token: str, user_email: str, event: dict
) -> httpx.Response:
    return await client.post(
        f"{config.GRAPH_API_URL}/users/{user_email}/events",
        headers={"Authorization": f"Bearer {access_token}"},
        json=event,
    )


def _event_window(due_date: date) -> dict:
    day = due_date.isoformat()
    return {
        "start": {"dateTime": f"{day}T09:00:00", "timeZone": "UTC"},
        "end": {"dateTime": f"{day}T10:00:00", "timeZone": "UTC"},
    }


def build_assignee_event(title: str, description: Optional[str], due_date: date) -> dict:
    return {
        "subject": title,
        "body": {
            "contentType": "HTML",
            "content": description or f'Task "{title}" assigned to you.',
        },
        **_event_window(due_date),
    }


def build_creator_event(
    title: str, description: Optional[str], due_date: date, assignee_email: str
) -> dict:
    return {
        "subject": f"Task Assigned: {title} (to {assignee_email})",
        "body": {
            "contentType": "HTML",
            "content": description or f'You assigned task "{title}" to {assignee_email}.',
        },
        **_event_window(due_date),
        "showAs": "free",
        "isReminderOn": False,
    }


def _log_graph_failure(party: str, response: httpx.Response) -> None:
    try:
        detail = response.json()
    except ValueError:
        detail = response.text
    logger.error(f"Graph API error ({party}): {response.status_code} {detail}")


async def create_task_events(
    title: str,
    description: Optional[str],
    due_date: date,
    assignee_email: str,
    creator_email: str,
    client: Optional[httpx.AsyncClient] = None,
) -> Tuple[int, dict]:
    """
    Create the assignee's event and a free-time copy in the creator's calendar.

    Returns ``(status_code, payload)``: 200 when both exist, 207 naming the
    side that failed, 500 when neither could be created.
    """
    owns_client = client is None
    client = client or httpx.AsyncClient(timeout=config.HTTP_TIMEOUT)
    try:
        try:
            token = await acquire_app_token(client)
        except (CalendarTokenError, httpx.HTTPError) as e:
            logger.error(f"Calendar token acquisition failed: {e}", exc_info=True)
            return 500, {"error": "Could not acquire access token"}

        assignee_ok = await _try_create(
            client, token, assignee_email,
            build_assignee_event(title, description, due_date), "assignee",
        )
        creator_ok = await _try_create(
            client, token, creator_email,
            build_creator_event(title, description, due_date, assignee_email), "creator",
        )
    finally:
        if owns_client:
            await client.aclose()

    if assignee_ok and creator_ok:
        return 200, {"message": "Events created successfully in both calendars"}
    if not assignee_ok and not creator_ok:
        return 500, {"error": "Failed to create events for both assignee and creator."}
    if not creator_ok:
        return 207, {
            "message": f"Event created for assignee, but failed for creator: {creator_email}"
        }
    return 207, {
        "message": f"Event created for creator, but failed for assignee: {assignee_email}"
    }


async def _try_create(
    client: httpx.AsyncClient, token: str, email: str, event: dict, party: str
) -> bool:
    try:
        response = await create_graph_event(client, token, email, event)
    except httpx.HTTPError as e:
        logger.error(f"Graph API request failed ({party}): {e}", exc_info=True)
        return False
    if response.is_success:
        return True
    _log_graph_failure(party, response)
    return False
