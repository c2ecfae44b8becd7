"""FastAPI authentication dependencies for route protection."""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from villastay.auth.jwt import decode_token
from villastay.database import get_db
from villastay.models.host import Host
from villastay.models.user import User

# Strict bearer, raises 403 automatically if no token provided
_bearer_scheme = HTTPBearer()


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _decode_subject(credentials: HTTPAuthorizationCredentials) -> tuple[uuid.UUID, str]:
    """Validate the bearer token and return ``(subject id, role)``."""
    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise _credentials_exception() from None

    if payload.get("type") != "access":
        raise _credentials_exception("Invalid token type")

    sub: str | None = payload.get("sub")
    if sub is None:
        raise _credentials_exception()
    try:
        subject_id = uuid.UUID(sub)
    except ValueError:
        raise _credentials_exception() from None

    return subject_id, payload.get("role", "user")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return the authenticated user (or admin) behind the Bearer token.

    Raises:
        HTTPException 401: If the token is invalid, belongs to a host, or the user is missing or inactive.
    """
    subject_id, role = _decode_subject(credentials)
    if role == "host":
        raise _credentials_exception("User token required")

    result = await db.execute(select(User).where(User.id == subject_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _credentials_exception()
    if not user.is_active:
        raise _credentials_exception("User account is inactive")
    return user


async def get_current_host(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Host:
    """Return the authenticated host behind the Bearer token.

    Raises:
        HTTPException 401: If the token is invalid or the host is missing or inactive.
        HTTPException 403: If the token is not a host token.
    """
    subject_id, role = _decode_subject(credentials)
    if role != "host":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Host access required")

    result = await db.execute(select(Host).where(Host.id == subject_id))
    host = result.scalar_one_or_none()
    if host is None:
        raise _credentials_exception()
    if not host.is_active:
        raise _credentials_exception("Host account is inactive")
    return host


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Return the current user only if they are a platform admin.

    Raises:
        HTTPException 403: If the user is not an admin.
    """
    if user.role != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user
