"""
Password hashing and JWT helpers

Access and refresh tokens are signed with independent secrets, so one
kind can never be accepted as the other.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from config import settings

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        # malformed or missing stored hash
        return False


def _secret_for(which: str) -> str:
    if which == ACCESS:
        return settings.JWT_SECRET
    if which == REFRESH:
        return settings.JWT_REFRESH_SECRET
    raise ValueError(f"Unknown token type: {which}")


def _create_token(user_id: str, which: str, expires_delta: timedelta) -> str:
    issued = datetime.now(timezone.utc)
    to_encode = {
        "sub": str(user_id),
        "type": which,
        "iat": issued,
        "exp": issued + expires_delta,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, _secret_for(which), algorithm=settings.ALGORITHM)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(user_id, ACCESS, expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(user_id, REFRESH, expires_delta or timedelta(hours=settings.REFRESH_TOKEN_EXPIRE_HOURS))


def verify_token(token: Optional[str], which: str) -> Optional[str]:
    """Return the user id carried by a valid token, None otherwise.

    A bad signature, an expired token or a token of the other kind are all
    ordinary outcomes here, not errors.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, _secret_for(which), algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != which:
        return None
    return payload.get("sub") or None
