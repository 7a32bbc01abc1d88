"""Access decision procedure.

Applies the precedence chain super-admin -> organization -> location ->
project to decide what slice of a tenant a principal may see. Each level is
consulted only when every level above it granted nothing, and only the
highest level present is used.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from context_access.models.assignment import ContextKind
from context_access.schemas.claims import Principal
from context_access.services.context_resolver import AsOf, ContextResolutionError, ContextResolver
from context_access.services.registry import ScopeIndex


class ResourceKind(str, Enum):
    ORGANIZATION = "organization"
    LOCATION = "location"
    PROJECT = "project"
    ISSUE = "issue"
    RFI = "rfi"
    SUBMITTAL = "submittal"

    @property
    def supports_location_scope(self) -> bool:
        return self not in (ResourceKind.ORGANIZATION, ResourceKind.LOCATION)


class DecisionKind(str, Enum):
    ALL_IN_TENANT = "all_in_tenant"
    ALL_IN_SCOPE = "all_in_scope"
    SUBSET = "subset"
    REQUIRES_SCOPE_SELECTION = "requires_scope_selection"
    FORBIDDEN = "forbidden"
    NO_ACCESS = "no_access"


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of :meth:`AccessDecisionService.decide`.

    ``context_ids`` is set for ``ALL_IN_SCOPE`` (the single granted location)
    and ``SUBSET`` (project ids). ``scope_id`` records the location a
    tenant-wide grant was narrowed to, if any.
    """

    kind: DecisionKind
    context_ids: Optional[FrozenSet[int]] = None
    scope_id: Optional[int] = None

    @classmethod
    def all_in_tenant(cls, scope_id: Optional[int] = None) -> "AccessDecision":
        return cls(DecisionKind.ALL_IN_TENANT, scope_id=scope_id)

    @classmethod
    def all_in_scope(cls, scope_id: int) -> "AccessDecision":
        return cls(DecisionKind.ALL_IN_SCOPE, context_ids=frozenset({scope_id}), scope_id=scope_id)

    @classmethod
    def subset(cls, context_ids: Iterable[int], scope_id: Optional[int] = None) -> "AccessDecision":
        return cls(DecisionKind.SUBSET, context_ids=frozenset(context_ids), scope_id=scope_id)

    @classmethod
    def requires_scope_selection(cls) -> "AccessDecision":
        return cls(DecisionKind.REQUIRES_SCOPE_SELECTION)

    @classmethod
    def forbidden(cls, scope_id: Optional[int] = None) -> "AccessDecision":
        return cls(DecisionKind.FORBIDDEN, scope_id=scope_id)

    @classmethod
    def no_access(cls) -> "AccessDecision":
        return cls(DecisionKind.NO_ACCESS)

    @property
    def grants_access(self) -> bool:
        return self.kind in (DecisionKind.ALL_IN_TENANT, DecisionKind.ALL_IN_SCOPE, DecisionKind.SUBSET)


class AccessDecisionService:
    """Turns a principal and requested resource kind into an :class:`AccessDecision`."""

    def __init__(self, resolver: ContextResolver, scope_index: ScopeIndex) -> None:
        self._resolver = resolver
        self._scope_index = scope_index
        self._logger = logging.getLogger("context_access.services.access")

    def decide(
        self,
        principal: Principal,
        resource_kind: Union[ResourceKind, str],
        scope_id: Optional[int] = None,
        *,
        as_of: Optional[AsOf] = None,
    ) -> AccessDecision:
        kind = ResourceKind(resource_kind)
        decision = self._evaluate(principal, kind, scope_id, as_of)
        self._logger.info(
            "access_decided",
            extra={
                "user_id": principal.user_id,
                "tenant_id": principal.tenant_id,
                "resource_kind": kind.value,
                "scope_id": scope_id,
                "decision": decision.kind.value,
            },
        )
        return decision

    def _evaluate(
        self,
        principal: Principal,
        kind: ResourceKind,
        scope_id: Optional[int],
        as_of: Optional[AsOf],
    ) -> AccessDecision:
        if principal.is_super_admin:
            # Unrestricted grant; the scope is a display filter, not a check.
            return AccessDecision.all_in_tenant(scope_id if kind.supports_location_scope else None)

        # Any number of organization rows means the same thing: the whole tenant.
        if self._resolve(principal, ContextKind.ORGANIZATION, as_of):
            return AccessDecision.all_in_tenant(scope_id if kind.supports_location_scope else None)

        location_ids = self._resolve(principal, ContextKind.LOCATION, as_of)
        if location_ids:
            if scope_id is None:
                return AccessDecision.requires_scope_selection()
            if scope_id in location_ids:
                return AccessDecision.all_in_scope(scope_id)
            return AccessDecision.forbidden(scope_id)

        project_ids = self._resolve(principal, ContextKind.PROJECT, as_of)
        if project_ids:
            if scope_id is None:
                return AccessDecision.subset(project_ids)
            in_scope = self._projects_in_location(scope_id, principal.tenant_id)
            return AccessDecision.subset(project_ids & in_scope, scope_id=scope_id)

        return AccessDecision.no_access()

    def _resolve(self, principal: Principal, context_type: ContextKind, as_of: Optional[AsOf]) -> FrozenSet[int]:
        return self._resolver.resolve(principal.user_id, context_type, principal.tenant_id, as_of=as_of)

    def _projects_in_location(self, location_id: int, tenant_id: int) -> FrozenSet[int]:
        try:
            return frozenset(self._scope_index.project_ids_in_location(location_id, tenant_id))
        except SQLAlchemyError as exc:
            self._logger.exception(
                "scope_resolution_failed",
                extra={"location_id": location_id, "tenant_id": tenant_id},
            )
            raise ContextResolutionError(f"Failed to resolve projects for location {location_id}") from exc
