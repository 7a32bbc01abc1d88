"""Dependency injection helpers for FastAPI routes."""

from __future__ import annotations

from typing import Iterator, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from context_access.core.config import AppSettings
from context_access.core.database import session_scope
from context_access.schemas.claims import Principal, parse_claims
from context_access.services.access import AccessDecisionService
from context_access.services.assignments import AssignmentService
from context_access.services.context_resolver import ContextResolver
from context_access.services.context_validator import ContextValidator
from context_access.services.registry import SqlDirectory, SqlScopeIndex


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_db_session(request: Request) -> Iterator[Session]:
    with session_scope(request.app.state.session_factory) as session:
        yield session


def get_principal(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
    x_tenant_id: Optional[str] = Header(default=None, alias="X-Tenant-Id"),
    x_super_admin: Optional[str] = Header(default=None, alias="X-Super-Admin"),
) -> Principal:
    # Stand-in for the authorizer context that fronts the service.
    claims = {"user_id": x_user_id, "org_id": x_tenant_id, "isSuperAdmin": x_super_admin}
    return parse_claims(claims)


def get_context_resolver(session: Session = Depends(get_db_session)) -> ContextResolver:
    return ContextResolver(session)


def get_access_service(
    session: Session = Depends(get_db_session),
    resolver: ContextResolver = Depends(get_context_resolver),
) -> AccessDecisionService:
    return AccessDecisionService(resolver, SqlScopeIndex(session))


def get_assignment_service(
    session: Session = Depends(get_db_session),
    settings: AppSettings = Depends(get_app_settings),
) -> AssignmentService:
    return AssignmentService(
        session,
        validator=ContextValidator.for_session(session),
        directory=SqlDirectory(session),
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
