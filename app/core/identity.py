import logging
from typing import Optional

import httpx
from fastapi import Header
from pydantic import ValidationError as PydanticValidationError

from app.core import config
from app.core.errors import Forbidden, Unauthorized
from app.schemas.user import CurrentUser

logger = logging.getLogger(__name__)


async def fetch_user(token: str) -> Optional[CurrentUser]:
    """Resolve a bearer token against the identity provider."""
    async with httpx.AsyncClient(timeout=config.HTTP_TIMEOUT) as client:
        res = await client.get(
            config.IDENTITY_API_URL,
            headers={"Authorization": f"Bearer {token}"},
        )
    if res.status_code in (401, 403, 404):
        return None
    res.raise_for_status()
    return CurrentUser(**res.json())


async def get_current_user(
    authorization: Optional[str] = Header(default=None),
) -> Optional[CurrentUser]:
    """FastAPI dependency: the signed-in user, or None for anonymous calls."""
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    try:
        return await fetch_user(token)
    except httpx.HTTPError as e:
        logger.error(f"Identity lookup failed: {e}", exc_info=True)
        return None
    except PydanticValidationError as e:
        logger.error(f"Identity service returned an unusable user: {e}")
        return None


def require_user(user: Optional[CurrentUser]) -> CurrentUser:
    if user is None:
        raise Unauthorized("Unauthorized")
    return user


def require_editor(user: Optional[CurrentUser]) -> CurrentUser:
    user = require_user(user)
    if not user.can_edit_tasks:
        raise Forbidden("Forbidden: You do not have permission to edit tasks.")
    return user
