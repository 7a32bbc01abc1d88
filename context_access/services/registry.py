"""Read-only adapters over the user, role and context registries.

These tables belong to neighbouring services. The resolution engine only
needs to know whether a row exists, whether it is soft-deleted, and which
tenant owns it, so each lookup returns a small immutable record.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Set

from sqlalchemy import select
from sqlalchemy.orm import Session

from context_access.models.assignment import ACTIVE_CONTEXT_KINDS
from context_access.models.registry import Location, Organization, Project, Role, User


@dataclass(frozen=True)
class ContextRecord:
    id: int
    tenant_id: int
    is_deleted: bool


@dataclass(frozen=True)
class UserRecord:
    id: int
    tenant_id: int
    is_super_admin: bool
    is_deleted: bool


@dataclass(frozen=True)
class RoleRecord:
    id: int
    tenant_id: Optional[int]
    is_deleted: bool


ContextLookup = Callable[[int], Optional[ContextRecord]]


class Directory(Protocol):
    """User and role registry contract."""

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        ...

    def get_role(self, role_id: int) -> Optional[RoleRecord]:
        ...


class ScopeIndex(Protocol):
    """Answers which resources sit under a scope such as a location."""

    def project_ids_in_location(self, location_id: int, tenant_id: int) -> Set[int]:
        ...


class SqlContextLookups:
    """Context lookups backed by the organization, location and project tables."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def organization(self, context_id: int) -> Optional[ContextRecord]:
        org = self._session.get(Organization, context_id)
        if org is None:
            return None
        return ContextRecord(id=org.id, tenant_id=org.id, is_deleted=org.is_deleted)

    def location(self, context_id: int) -> Optional[ContextRecord]:
        location = self._session.get(Location, context_id)
        if location is None:
            return None
        return ContextRecord(id=location.id, tenant_id=location.org_id, is_deleted=location.is_deleted)

    def project(self, context_id: int) -> Optional[ContextRecord]:
        project = self._session.get(Project, context_id)
        if project is None:
            return None
        return ContextRecord(id=project.id, tenant_id=project.org_id, is_deleted=project.is_deleted)

    def as_mapping(self) -> Dict[str, ContextLookup]:
        # Each active kind has a lookup method of the same name.
        return {kind.value: getattr(self, kind.value) for kind in ACTIVE_CONTEXT_KINDS}


class SqlDirectory(Directory):
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_user(self, user_id: int) -> Optional[UserRecord]:
        user = self._session.get(User, user_id)
        if user is None:
            return None
        return UserRecord(
            id=user.id,
            tenant_id=user.org_id,
            is_super_admin=user.is_super_admin,
            is_deleted=user.is_deleted,
        )

    def get_role(self, role_id: int) -> Optional[RoleRecord]:
        role = self._session.get(Role, role_id)
        if role is None:
            return None
        return RoleRecord(id=role.id, tenant_id=role.org_id, is_deleted=role.is_deleted)


class SqlScopeIndex(ScopeIndex):
    def __init__(self, session: Session) -> None:
        self._session = session

    def project_ids_in_location(self, location_id: int, tenant_id: int) -> Set[int]:
        stmt = (
            select(Project.id)
            .where(Project.location_id == location_id)
            .where(Project.org_id == tenant_id)
            .where(Project.is_deleted.is_(False))
        )
        return set(self._session.scalars(stmt).all())
