"""
Authentication gate for protected routes

The access token is checked first without touching the store. Only when
it fails is the refresh token verified, matched against the one stored
for the user, and rotated into a brand-new pair that is returned to the
client in the response headers.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request, Response
from pymongo.database import Database

from database import get_db
from errors import AuthenticationExpired, AuthenticationRequired
from security import ACCESS, REFRESH, create_access_token, create_refresh_token, verify_token
from users import UserRepository

logger = logging.getLogger(__name__)

REFRESH_HEADER = "Refresh-Token"


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


def rotation_headers(request: Request) -> dict:
    """Headers carrying a pair rotated earlier in this request, if any."""
    return getattr(request.state, "rotated_headers", None) or {}


def authenticate(db: Database, access_token: Optional[str], refresh_token: Optional[str]) -> tuple:
    """Run the gate protocol.

    Returns (user_id, new_pair) where new_pair is None on the fast path
    and (access, refresh) after a rotation.
    """
    if not access_token or not refresh_token:
        raise AuthenticationRequired("Authentication required")

    user_id = verify_token(access_token, ACCESS)
    if user_id:
        return user_id, None

    user_id = verify_token(refresh_token, REFRESH)
    if not user_id:
        raise AuthenticationExpired("Session expired, please log in again")

    users = UserRepository(db)
    user = users.find_by_id(user_id)
    if not user or user.get("refresh_token") != refresh_token:
        logger.warning("Refresh token mismatch for user %s", user_id)
        raise AuthenticationExpired("Invalid refresh token")

    new_access = create_access_token(user_id)
    new_refresh = create_refresh_token(user_id)
    if not users.rotate_tokens(user, refresh_token, new_access, new_refresh):
        # another request rotated this pair first
        logger.warning("Concurrent refresh for user %s rejected", user_id)
        raise AuthenticationExpired("Invalid refresh token")

    logger.info("Rotated token pair for user %s", user_id)
    return user_id, (new_access, new_refresh)


def require_user(
    request: Request,
    response: Response,
    authorization: Optional[str] = Header(default=None),
    refresh_token: Optional[str] = Header(default=None),
    db: Database = Depends(get_db),
) -> str:
    user_id, new_pair = authenticate(db, bearer_token(authorization), refresh_token)
    if new_pair:
        headers = {"Authorization": f"Bearer {new_pair[0]}", REFRESH_HEADER: new_pair[1]}
        for name, value in headers.items():
            response.headers[name] = value
        # error responses are built from scratch, so keep a copy for them
        request.state.rotated_headers = headers
    request.state.user_id = user_id
    return user_id
