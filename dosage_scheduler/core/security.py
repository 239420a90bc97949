"""Password hashing and session token handling."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from dosage_scheduler.core.config import get_settings

settings = get_settings()


@dataclass(frozen=True)
class SessionClaims:
    """Identity carried by a session token."""

    uid: uuid.UUID
    role: str | None = None
    hospital_id: uuid.UUID | None = None


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its hash using bcrypt."""
    try:
        return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())
    except (ValueError, TypeError):  # guard against malformed hashes
        return False


def get_password_hash(password: str) -> str:
    """Hash a password for storage using bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def create_session_token(
    uid: uuid.UUID,
    *,
    role: str | None = None,
    hospital_id: uuid.UUID | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a JWT identifying ``uid`` with its role and hospital."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    claims: dict[str, Any] = {
        "sub": str(uid),
        "exp": datetime.now(UTC) + expires_delta,
    }
    if role is not None:
        claims["role"] = role
    if hospital_id is not None:
        claims["hospital_id"] = str(hospital_id)
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_session_token(token: str) -> SessionClaims:
    """Verify a session token, raising JWTError when it cannot be trusted."""
    payload = jwt.decode(
        token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
    )
    subject = payload.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    try:
        uid = uuid.UUID(subject)
        hospital_raw = payload.get("hospital_id")
        hospital_id = uuid.UUID(hospital_raw) if hospital_raw else None
    except (ValueError, TypeError) as exc:
        raise JWTError("Malformed identity claims") from exc
    return SessionClaims(uid=uid, role=payload.get("role"), hospital_id=hospital_id)
