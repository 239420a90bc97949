"""Helper utilities for recording audit events."""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dosage_scheduler.models.audit_event import AuditEvent

logger = logging.getLogger(__name__)


async def record_event(
    session: AsyncSession,
    *,
    event_type: str,
    user_id: uuid.UUID | None = None,
    hospital_id: uuid.UUID | None = None,
    resource_type: str | None = None,
    resource_id: uuid.UUID | str | None = None,
    description: str | None = None,
    payload: dict[str, Any] | None = None,
    ip_address: str | None = None,
) -> AuditEvent | None:
    """Persist an audit event; failures are logged and never raised."""
    event = AuditEvent(
        hospital_id=hospital_id,
        user_id=user_id,
        event_type=event_type,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        description=description,
        payload=payload,
        ip_address=ip_address,
    )
    session.add(event)
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to record audit event %s", event_type)
        return None
    return event
