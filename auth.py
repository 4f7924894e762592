"""
Authentication dependencies
"""

import logging
from typing import Optional
from fastapi import HTTPException, Header, Cookie

from auth_utils import decode_jwt
from models.user import CurrentUser

logger = logging.getLogger(__name__)


def _extract_token(auth_token: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if auth_token:
        return auth_token
    if authorization and authorization.startswith("Bearer "):
        return authorization.replace("Bearer ", "", 1).strip()
    return None


async def get_current_user(
    auth_token: Optional[str] = Cookie(None),
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> CurrentUser:
    """
    Dependency function to get current authenticated user.

    Authentication priority:
    1. Check auth_token cookie first (browser clients)
    2. Fallback to Authorization header (Bearer token) for API consumers
    3. Raise 401 if neither is found
    """
    token = _extract_token(auth_token, authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing authentication token")

    try:
        payload = decode_jwt(token)
    except ValueError as e:
        logger.error(f"Cannot verify tokens: {e}")
        raise HTTPException(status_code=500, detail="Authentication is not configured")

    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    return CurrentUser(user_id=str(user_id), email=payload.get("email"), access_token=token)
