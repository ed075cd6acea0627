"""
Bearer token verification.

Sign-up and login live in the external identity provider; this service only
verifies the HS256 tokens it issues. `sub` is the opaque user id and `role`
one of student, teacher or admin. `create_access_token` mints compatible
tokens for local development, load tests and the test suite.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import ValidationError

from yoga_booking.core.config import get_settings
from yoga_booking.core.exceptions import Forbidden
from yoga_booking.schemas.auth import Identity, Role

settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode["exp"] = expire
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Identity:
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    return Identity(**payload)


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception
    try:
        return decode_access_token(credentials.credentials)
    except (JWTError, ValidationError):
        raise credentials_exception


def require_role(*roles: Role):
    """Dependency factory rejecting identities whose role is not listed."""

    async def checker(identity: Identity = Depends(get_current_identity)) -> Identity:
        if identity.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires role: {', '.join(r.value for r in roles)}",
            )
        return identity

    return checker


def ensure_acting_for(identity: Identity, student_id: Optional[str]) -> str:
    """
    The caller may only act for themselves. Returns the effective student id
    (the caller's own when none was named).
    """
    if student_id is not None and student_id != identity.user_id:
        raise Forbidden("Students can only manage their own bookings")
    return identity.user_id
