"""Tables owned by neighbouring services that access resolution reads.

Only the columns the resolution engine needs are mapped: existence, soft
delete, tenant ownership, and the location a project sits under.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from context_access.models.base import Base, SoftDeleteMixin, TimestampMixin
from context_access.models.types import IdType


class Organization(SoftDeleteMixin, TimestampMixin, Base):
    """A tenant. Its id is the tenant id."""

    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)


class User(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "users"
    __table_args__ = (Index("ix_users_org", "org_id"),)

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(IdType, ForeignKey("organizations.id"), nullable=False)
    email: Mapped[str] = mapped_column(String(length=255), nullable=False)
    is_super_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Role(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    org_id: Mapped[Optional[int]] = mapped_column(IdType, ForeignKey("organizations.id"), nullable=True)
    name: Mapped[str] = mapped_column(String(length=120), nullable=False)


class Location(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "locations"
    __table_args__ = (Index("ix_locations_org", "org_id"),)

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(IdType, ForeignKey("organizations.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)


class Project(SoftDeleteMixin, TimestampMixin, Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_org", "org_id"),
        Index("ix_projects_location", "location_id"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    org_id: Mapped[int] = mapped_column(IdType, ForeignKey("organizations.id"), nullable=False)
    location_id: Mapped[int] = mapped_column(IdType, ForeignKey("locations.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
