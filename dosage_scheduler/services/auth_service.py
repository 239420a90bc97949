"""Authentication service helpers."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.core.security import create_session_token, verify_password
from dosage_scheduler.models.user import User, UserStatus


async def get_user_by_email(session: AsyncSession, *, email: str) -> User | None:
    result = await session.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User | None:
    return await session.get(User, user_id)


async def authenticate_user(
    session: AsyncSession, email: str, password: str
) -> User | None:
    """Validate credentials and return an active user if correct."""
    user = await get_user_by_email(session, email=email)
    if user is None:
        return None
    if user.status != UserStatus.ACTIVE:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_session_token_for_user(user: User) -> str:
    """Issue the JWT used both as bearer token and session cookie."""
    return create_session_token(
        user.id, role=user.role.value, hospital_id=user.hospital_id
    )
