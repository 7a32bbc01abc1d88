"""Assignment lifecycle: create, bulk create, update, soft delete, transfer and queries."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from context_access.core.database import begin_write
from context_access.models.assignment import ContextKind, UserAssignment
from context_access.models.registry import User
from context_access.schemas.assignment import (
    AssignmentBulkCreate,
    AssignmentCreate,
    AssignmentFilters,
    AssignmentTransfer,
    AssignmentUpdate,
)
from context_access.schemas.claims import Principal
from context_access.services.context_resolver import Clock, to_day, utc_now
from context_access.services.context_validator import ContextValidator, WrongTenantError, kind_value
from context_access.services.registry import Directory, SqlDirectory


class AssignmentServiceError(Exception):
    """Base class for assignment service errors."""


class AssignmentNotFoundError(AssignmentServiceError):
    """Raised when an assignment cannot be found in the caller's tenant."""


class UserNotFoundError(AssignmentServiceError):
    """Raised when the assigned user does not exist or is deleted."""


class RoleNotFoundError(AssignmentServiceError):
    """Raised when the referenced role does not exist or is deleted."""


class AssignmentValidationError(AssignmentServiceError):
    """Raised for malformed input such as an inverted validity window."""


class DuplicateAssignmentError(AssignmentServiceError):
    """Raised when a live assignment with the same user, role and context already exists."""


class ImmutableFieldError(AssignmentServiceError):
    """Raised when an update tries to change user, context type or context id."""


IDENTITY_FIELDS = ("user_id", "context_type", "context_id")
MUTABLE_FIELDS = ("role_id", "trade_specialization", "is_primary", "valid_from", "valid_until")
_NON_NULLABLE = ("role_id", "is_primary")


class AssignmentService:
    """Coordinates assignment writes and tenant-scoped reads."""

    def __init__(
        self,
        session: Session,
        *,
        validator: Optional[ContextValidator] = None,
        directory: Optional[Directory] = None,
        clock: Optional[Clock] = None,
        default_page_size: int = 50,
        max_page_size: int = 100,
    ) -> None:
        self._session = session
        self._validator = validator or ContextValidator.for_session(session)
        self._directory = directory or SqlDirectory(session)
        self._clock = clock or utc_now
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size
        self._logger = logging.getLogger("context_access.services.assignments")

    def create(self, payload: AssignmentCreate, *, actor: Principal) -> UserAssignment:
        begin_write(self._session)
        tenant_id = actor.tenant_id
        self._check_window(payload.valid_from, payload.valid_until)
        self._validator.validate(payload.context_type, payload.context_id, tenant_id)
        self._require_user(payload.user_id, tenant_id)
        self._require_role(payload.role_id, tenant_id)

        assignment = self._build(payload, payload.user_id, actor)
        self._insert([assignment], payload)

        self._logger.info(
            "assignment_created",
            extra={
                "assignment_id": assignment.id,
                "user_id": assignment.user_id,
                "context_type": assignment.context_type,
                "context_id": assignment.context_id,
                "actor_id": actor.user_id,
            },
        )
        return assignment

    def bulk_create(self, payload: AssignmentBulkCreate, *, actor: Principal) -> List[UserAssignment]:
        """Assign many users to one context. Either every row is written or none is."""

        begin_write(self._session)
        tenant_id = actor.tenant_id
        self._check_window(payload.valid_from, payload.valid_until)
        self._validator.validate(payload.context_type, payload.context_id, tenant_id)
        self._require_role(payload.role_id, tenant_id)

        user_ids = list(dict.fromkeys(payload.user_ids))
        for user_id in user_ids:
            self._require_user(user_id, tenant_id)

        assignments = [self._build(payload, user_id, actor) for user_id in user_ids]
        self._insert(assignments, payload)

        self._logger.info(
            "assignments_bulk_created",
            extra={
                "user_count": len(user_ids),
                "context_type": kind_value(payload.context_type),
                "context_id": payload.context_id,
                "actor_id": actor.user_id,
            },
        )
        return assignments

    def get(self, assignment_id: int, *, tenant_id: int) -> UserAssignment:
        stmt = self._tenant_scoped(select(UserAssignment), tenant_id).where(UserAssignment.id == assignment_id)
        assignment = self._session.scalar(stmt)
        if assignment is None:
            raise AssignmentNotFoundError(f"Assignment {assignment_id} not found")
        return assignment

    def update(self, assignment_id: int, payload: AssignmentUpdate, *, actor: Principal) -> UserAssignment:
        begin_write(self._session)
        assignment = self.get(assignment_id, tenant_id=actor.tenant_id)
        if assignment.is_deleted:
            raise AssignmentNotFoundError(f"Assignment {assignment_id} not found")

        updates = payload.model_dump(exclude_unset=True)
        changed_identity = sorted(
            field
            for field in IDENTITY_FIELDS
            if field in updates and updates[field] != getattr(assignment, field)
        )
        if changed_identity:
            raise ImmutableFieldError(
                f"Fields {', '.join(changed_identity)} cannot be changed; "
                "delete the assignment and create a new one instead"
            )

        changes = {field: updates[field] for field in MUTABLE_FIELDS if field in updates}
        if not changes:
            raise AssignmentValidationError("No fields to update")
        for field in _NON_NULLABLE:
            if field in changes and changes[field] is None:
                raise AssignmentValidationError(f"{field} cannot be null")

        self._check_window(
            changes.get("valid_from", assignment.valid_from),
            changes.get("valid_until", assignment.valid_until),
        )
        if "role_id" in changes and changes["role_id"] != assignment.role_id:
            self._require_role(changes["role_id"], actor.tenant_id)

        for field, value in changes.items():
            setattr(assignment, field, value)
        assignment.updated_by = actor.user_id
        self._flush_or_duplicate(assignment_id=assignment.id, user_id=assignment.user_id)

        self._logger.info(
            "assignment_updated",
            extra={"assignment_id": assignment.id, "changes": sorted(changes), "actor_id": actor.user_id},
        )
        return assignment

    def delete(self, assignment_id: int, *, actor: Principal) -> UserAssignment:
        """Soft delete. Deleting an already deleted assignment succeeds without change."""

        begin_write(self._session)
        assignment = self.get(assignment_id, tenant_id=actor.tenant_id)
        if assignment.is_deleted:
            return assignment

        assignment.is_deleted = True
        assignment.updated_by = actor.user_id
        self._session.flush()

        self._logger.info(
            "assignment_deleted",
            extra={"assignment_id": assignment.id, "actor_id": actor.user_id},
        )
        return assignment

    def list(self, filters: AssignmentFilters, *, tenant_id: int) -> Tuple[List[UserAssignment], int, int, int]:
        """Return (assignments, total, page, page_size) for the filtered, paginated query."""

        stmt = self._tenant_scoped(select(UserAssignment), tenant_id)
        if not filters.include_deleted:
            stmt = stmt.where(UserAssignment.is_deleted.is_(False))
        if filters.user_id is not None:
            stmt = stmt.where(UserAssignment.user_id == filters.user_id)
        if filters.role_id is not None:
            stmt = stmt.where(UserAssignment.role_id == filters.role_id)
        if filters.context_type is not None:
            stmt = stmt.where(UserAssignment.context_type == kind_value(filters.context_type))
        if filters.context_id is not None:
            stmt = stmt.where(UserAssignment.context_id == filters.context_id)
        if filters.is_primary is not None:
            stmt = stmt.where(UserAssignment.is_primary == filters.is_primary)
        if filters.trade_specialization:
            stmt = stmt.where(UserAssignment.trade_specialization == filters.trade_specialization)
        if filters.active_only:
            stmt = stmt.where(UserAssignment.live_at(self._today()))

        total = self._session.scalar(select(func.count()).select_from(stmt.subquery())) or 0

        page = filters.page
        page_size = min(filters.page_size or self._default_page_size, self._max_page_size)
        stmt = (
            stmt.order_by(UserAssignment.created_at.desc(), UserAssignment.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )
        return list(self._session.scalars(stmt)), total, page, page_size

    def user_summary(self, user_id: int, *, tenant_id: int) -> Dict[str, Any]:
        user = self._directory.get_user(user_id)
        if user is None or user.tenant_id != tenant_id:
            raise UserNotFoundError(f"User {user_id} not found")

        assignments = self._all(
            self._tenant_scoped(select(UserAssignment), tenant_id)
            .where(UserAssignment.user_id == user_id)
            .where(UserAssignment.is_deleted.is_(False))
        )
        today = self._today()
        return {
            "user_id": user_id,
            "org_id": tenant_id,
            "total_assignments": len(assignments),
            "active_assignments": sum(1 for assignment in assignments if assignment.is_live(today)),
            "assignments_by_type": dict(Counter(assignment.context_type for assignment in assignments)),
            "assignments": assignments,
        }

    def context_assignments(
        self,
        context_type: Union[ContextKind, str],
        context_id: int,
        *,
        tenant_id: int,
    ) -> Dict[str, Any]:
        kind = kind_value(context_type)
        assignments = self._all(
            self._tenant_scoped(select(UserAssignment), tenant_id)
            .where(UserAssignment.context_type == kind)
            .where(UserAssignment.context_id == context_id)
            .where(UserAssignment.is_deleted.is_(False))
        )
        return {
            "context_type": kind,
            "context_id": context_id,
            "org_id": tenant_id,
            "assignments": assignments,
        }

    def transfer(self, payload: AssignmentTransfer, *, actor: Principal) -> List[UserAssignment]:
        """Move assignments to another user as soft delete plus create, atomically.

        With explicit ids every id must belong to the source user and be live
        in the sense of not deleted; without ids all currently live
        assignments of the source user move.
        """

        begin_write(self._session)
        tenant_id = actor.tenant_id
        if payload.from_user_id == payload.to_user_id:
            raise AssignmentValidationError("Source and target user must differ")
        self._require_user(payload.to_user_id, tenant_id)

        stmt = (
            self._tenant_scoped(select(UserAssignment), tenant_id)
            .where(UserAssignment.user_id == payload.from_user_id)
            .where(UserAssignment.is_deleted.is_(False))
        )
        if payload.assignment_ids:
            stmt = stmt.where(UserAssignment.id.in_(payload.assignment_ids))
        else:
            stmt = stmt.where(UserAssignment.live_at(self._today()))
        sources = self._all(stmt.order_by(UserAssignment.id))

        if payload.assignment_ids:
            missing = sorted(set(payload.assignment_ids) - {source.id for source in sources})
            if missing:
                raise AssignmentNotFoundError(
                    f"Assignments {missing} not found for user {payload.from_user_id}"
                )
        if not sources:
            raise AssignmentNotFoundError("No assignments found to transfer")

        for source in sources:
            source.is_deleted = True
            source.updated_by = actor.user_id
        # Retire the source rows before inserting so the live-tuple index sees a consistent state.
        self._session.flush()

        transferred = [
            UserAssignment(
                user_id=payload.to_user_id,
                role_id=source.role_id,
                context_type=source.context_type,
                context_id=source.context_id,
                trade_specialization=source.trade_specialization,
                is_primary=source.is_primary if payload.preserve_primary else False,
                valid_from=source.valid_from,
                valid_until=source.valid_until,
                created_by=actor.user_id,
                updated_by=actor.user_id,
            )
            for source in sources
        ]
        self._session.add_all(transferred)
        self._flush_or_duplicate(from_user_id=payload.from_user_id, to_user_id=payload.to_user_id)

        self._logger.info(
            "assignments_transferred",
            extra={
                "from_user_id": payload.from_user_id,
                "to_user_id": payload.to_user_id,
                "transferred_count": len(transferred),
                "actor_id": actor.user_id,
            },
        )
        return transferred

    def _build(
        self,
        payload: Union[AssignmentCreate, AssignmentBulkCreate],
        user_id: int,
        actor: Principal,
    ) -> UserAssignment:
        return UserAssignment(
            user_id=user_id,
            role_id=payload.role_id,
            context_type=kind_value(payload.context_type),
            context_id=payload.context_id,
            trade_specialization=payload.trade_specialization or None,
            is_primary=payload.is_primary,
            valid_from=payload.valid_from,
            valid_until=payload.valid_until,
            created_by=actor.user_id,
            updated_by=actor.user_id,
        )

    def _insert(
        self,
        assignments: Sequence[UserAssignment],
        payload: Union[AssignmentCreate, AssignmentBulkCreate],
    ) -> None:
        self._session.add_all(assignments)
        self._flush_or_duplicate(context_type=kind_value(payload.context_type), context_id=payload.context_id)

    def _flush_or_duplicate(self, **log_context: Any) -> None:
        # Uniqueness is decided by the partial unique index, never by a prior read.
        try:
            self._session.flush()
        except IntegrityError as exc:
            self._session.rollback()
            self._logger.info(
                "assignment_duplicate_rejected",
                extra=log_context,
            )
            raise DuplicateAssignmentError(
                "An active assignment for this user, role and context already exists"
            ) from exc

    def _require_user(self, user_id: int, tenant_id: int) -> None:
        user = self._directory.get_user(user_id)
        if user is None or user.is_deleted:
            raise UserNotFoundError(f"User {user_id} not found")
        if user.tenant_id != tenant_id:
            raise WrongTenantError(f"User {user_id} does not belong to organization {tenant_id}")

    def _require_role(self, role_id: int, tenant_id: int) -> None:
        role = self._directory.get_role(role_id)
        if role is None or role.is_deleted or (role.tenant_id is not None and role.tenant_id != tenant_id):
            raise RoleNotFoundError(f"Role {role_id} not found")

    @staticmethod
    def _check_window(valid_from: Optional[date], valid_until: Optional[date]) -> None:
        if valid_from is not None and valid_until is not None and valid_until < valid_from:
            raise AssignmentValidationError("valid_until must not be earlier than valid_from")

    @staticmethod
    def _tenant_scoped(stmt: Select, tenant_id: int) -> Select:
        return stmt.join(User, User.id == UserAssignment.user_id).where(User.org_id == tenant_id)

    def _all(self, stmt: Select) -> List[UserAssignment]:
        return list(self._session.scalars(stmt))

    def _today(self) -> date:
        return to_day(self._clock())
