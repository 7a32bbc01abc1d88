"""Checks that an assignment's target context exists inside the tenant."""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Union

from sqlalchemy.orm import Session

from context_access.models.assignment import ContextKind
from context_access.services.registry import ContextLookup, SqlContextLookups


class ContextValidationError(Exception):
    """Base class for context validation failures."""


class UnsupportedContextKindError(ContextValidationError):
    """Raised when no lookup is registered for a context kind."""


class ContextNotFoundError(ContextValidationError):
    """Raised when the context does not exist or is soft-deleted."""


class WrongTenantError(ContextValidationError):
    """Raised when a context or user belongs to a different tenant."""


def kind_value(kind: Union[ContextKind, str]) -> str:
    return kind.value if isinstance(kind, ContextKind) else str(kind)


class ContextValidator:
    """Per-kind registry of context lookups.

    Organization, location and project lookups are installed by
    :meth:`for_session`. Any other kind, including the reserved ones, must be
    registered explicitly; until then validation fails closed. Runs when an
    assignment is created, never during resolution.
    """

    def __init__(self, lookups: Optional[Mapping[str, ContextLookup]] = None) -> None:
        self._lookups: Dict[str, ContextLookup] = {}
        self._logger = logging.getLogger("context_access.services.context_validator")
        for kind, lookup in (lookups or {}).items():
            self.register(kind, lookup)

    @classmethod
    def for_session(cls, session: Session) -> "ContextValidator":
        return cls(SqlContextLookups(session).as_mapping())

    def register(self, kind: Union[ContextKind, str], lookup: ContextLookup) -> None:
        self._lookups[kind_value(kind)] = lookup

    def supports(self, kind: Union[ContextKind, str]) -> bool:
        return kind_value(kind) in self._lookups

    def validate(self, kind: Union[ContextKind, str], context_id: int, tenant_id: int) -> None:
        key = kind_value(kind)
        lookup = self._lookups.get(key)
        if lookup is None:
            raise UnsupportedContextKindError(f"Unsupported context type: {key}")

        record = lookup(context_id)
        if record is None or record.is_deleted:
            raise ContextNotFoundError(f"{key} with ID {context_id} not found or deleted")
        if record.tenant_id != tenant_id:
            self._logger.warning(
                "context_tenant_mismatch",
                extra={"context_type": key, "context_id": context_id, "tenant_id": tenant_id},
            )
            raise WrongTenantError(f"{key} with ID {context_id} does not belong to organization {tenant_id}")
