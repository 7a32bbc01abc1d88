"""Declarative base and mixins."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, func, false
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from context_access.models.types import IdType


class Base(DeclarativeBase):
    """Declarative base class for all ORM models."""


class TimestampMixin:
    """Adds created_at/updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class AuditMixin(TimestampMixin):
    """Timestamps plus the acting user for each write."""

    created_by: Mapped[Optional[int]] = mapped_column(IdType, nullable=True)
    updated_by: Mapped[Optional[int]] = mapped_column(IdType, nullable=True)


class SoftDeleteMixin:
    """Rows are flagged, never removed."""

    is_deleted: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=false(),
        nullable=False,
    )
