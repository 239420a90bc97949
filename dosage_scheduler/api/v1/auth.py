"""Authentication endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.api.deps import get_db_session
from dosage_scheduler.core.config import get_settings
from dosage_scheduler.schemas.auth import Token
from dosage_scheduler.services import audit_service
from dosage_scheduler.services.auth_service import (
    authenticate_user,
    create_session_token_for_user,
)

router = APIRouter()


def _client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


@router.post("/token", response_model=Token, summary="Obtain access token")
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    response: Response,
) -> Token:
    """Validate credentials, issue a bearer token and set the session cookie."""
    user = await authenticate_user(
        session, email=form_data.username, password=form_data.password
    )
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    settings = get_settings()
    access_token = create_session_token_for_user(user)
    response.set_cookie(
        settings.session_cookie_name,
        access_token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        samesite="lax",
        secure=settings.app_env == "production",
    )
    await audit_service.record_event(
        session,
        hospital_id=user.hospital_id,
        user_id=user.id,
        event_type="auth.login",
        description="Successful login",
        payload={"user_id": str(user.id), "role": user.role.value},
        ip_address=_client_ip(request),
    )
    return Token(access_token=access_token)
