"""Hospital model representing a tenant."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dosage_scheduler.db.base import Base
from dosage_scheduler.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from dosage_scheduler.models.user import User


class Hospital(TimestampMixin, Base):
    """A hospital tenant; staff and patients are scoped to one."""

    __tablename__ = "hospitals"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    users: Mapped[list["User"]] = relationship("User", back_populates="hospital")
