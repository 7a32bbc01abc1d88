"""Resolves which contexts of a kind a user currently holds."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable, FrozenSet, Optional, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from context_access.models.assignment import ContextKind, UserAssignment
from context_access.models.registry import User
from context_access.services.context_validator import kind_value

Clock = Callable[[], datetime]
AsOf = Union[date, datetime]


class ContextResolutionError(Exception):
    """Raised when the assignment store cannot answer a resolution query."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_day(value: AsOf) -> date:
    """Collapse an instant to the UTC calendar day that validity windows are expressed in."""

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


class ContextResolver:
    """Pure read over live assignments, scoped to the querying tenant."""

    def __init__(self, session: Session, clock: Optional[Clock] = None) -> None:
        self._session = session
        self._clock = clock or utc_now
        self._logger = logging.getLogger("context_access.services.context_resolver")

    def today(self) -> date:
        return to_day(self._clock())

    def resolve(
        self,
        user_id: int,
        context_type: Union[ContextKind, str],
        tenant_id: int,
        as_of: Optional[AsOf] = None,
    ) -> FrozenSet[int]:
        day = to_day(as_of) if as_of is not None else self.today()
        kind = kind_value(context_type)

        stmt = (
            select(UserAssignment.context_id)
            .distinct()
            .join(User, User.id == UserAssignment.user_id)
            .where(UserAssignment.user_id == user_id)
            .where(UserAssignment.context_type == kind)
            .where(User.org_id == tenant_id)
            .where(User.is_deleted.is_(False))
            .where(UserAssignment.live_at(day))
        )
        try:
            context_ids = frozenset(self._session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            self._logger.exception(
                "context_resolution_failed",
                extra={"user_id": user_id, "context_type": kind, "tenant_id": tenant_id},
            )
            raise ContextResolutionError(f"Failed to resolve {kind} contexts for user {user_id}") from exc

        self._logger.debug(
            "contexts_resolved",
            extra={
                "user_id": user_id,
                "context_type": kind,
                "tenant_id": tenant_id,
                "as_of": day.isoformat(),
                "count": len(context_ids),
            },
        )
        return context_ids
