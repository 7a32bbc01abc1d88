"""User assignment binding a user and role to a context."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, and_, false, or_, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from context_access.models.base import AuditMixin, Base, SoftDeleteMixin
from context_access.models.types import IdType


class ContextKind(str, Enum):
    ORGANIZATION = "organization"
    LOCATION = "location"
    PROJECT = "project"
    # Reserved: accepted once a lookup is registered for them.
    DEPARTMENT = "department"
    EQUIPMENT = "equipment"
    PHASE = "phase"


ACTIVE_CONTEXT_KINDS = (ContextKind.ORGANIZATION, ContextKind.LOCATION, ContextKind.PROJECT)


class UserAssignment(SoftDeleteMixin, AuditMixin, Base):
    """Grants a user a role within one organization, location, project or other context."""

    __tablename__ = "user_assignments"
    __table_args__ = (
        Index("ix_user_assignments_user_context", "user_id", "context_type"),
        Index("ix_user_assignments_context", "context_type", "context_id"),
        Index(
            "uq_user_assignments_live_tuple",
            "user_id",
            "role_id",
            "context_type",
            "context_id",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(IdType, ForeignKey("users.id"), nullable=False)
    role_id: Mapped[int] = mapped_column(IdType, ForeignKey("roles.id"), nullable=False)
    # Plain string rather than a database enum so new kinds need no migration.
    context_type: Mapped[str] = mapped_column(String(length=32), nullable=False)
    context_id: Mapped[int] = mapped_column(IdType, nullable=False)
    trade_specialization: Mapped[Optional[str]] = mapped_column(String(length=120), nullable=True)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    valid_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    valid_until: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    @classmethod
    def live_at(cls, as_of: date) -> ColumnElement[bool]:
        """SQL predicate: not deleted and inside the (inclusive) validity window."""

        return and_(
            cls.is_deleted == false(),
            or_(cls.valid_from.is_(None), cls.valid_from <= as_of),
            or_(cls.valid_until.is_(None), cls.valid_until >= as_of),
        )

    def is_live(self, as_of: date) -> bool:
        if self.is_deleted:
            return False
        if self.valid_from is not None and self.valid_from > as_of:
            return False
        if self.valid_until is not None and self.valid_until < as_of:
            return False
        return True
