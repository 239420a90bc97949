"""Common API dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Annotated, Protocol
from zoneinfo import ZoneInfo

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.core.clock import SystemClock, resolve_timezone
from dosage_scheduler.core.config import get_settings
from dosage_scheduler.core.security import decode_session_token
from dosage_scheduler.db.session import get_session
from dosage_scheduler.models.user import User, UserStatus
from dosage_scheduler.services import auth_service

settings = get_settings()

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_v1_prefix}/auth/token", auto_error=False
)

_system_clock = SystemClock()


class Clock(Protocol):
    def now(self) -> datetime: ...


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def get_clock() -> Clock:
    """Source of "now"; overridden in tests."""
    return _system_clock


def get_local_timezone() -> ZoneInfo:
    return resolve_timezone(get_settings().scheduler_timezone)


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> User:
    """Authenticate via bearer token, falling back to the session cookie."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    raw_token = token or request.cookies.get(get_settings().session_cookie_name)
    if not raw_token:
        raise credentials_exception

    try:
        claims = decode_session_token(raw_token)
    except JWTError as exc:
        raise credentials_exception from exc

    user = await auth_service.get_user(session, claims.uid)
    if user is None or user.status != UserStatus.ACTIVE:
        raise credentials_exception
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Ensure the current user is active."""
    return current_user
