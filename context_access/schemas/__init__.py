"""Pydantic schemas for API payloads."""

from context_access.schemas.access import AccessDecisionResponse, ResolvedContextsResponse
from context_access.schemas.assignment import (
    AssignmentBulkCreate,
    AssignmentCreate,
    AssignmentFilters,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentTransfer,
    AssignmentUpdate,
    ContextAssignmentSummary,
    UserAssignmentSummary,
)
from context_access.schemas.claims import ClaimsError, Principal, parse_claims

__all__ = [
    "AccessDecisionResponse",
    "AssignmentBulkCreate",
    "AssignmentCreate",
    "AssignmentFilters",
    "AssignmentListResponse",
    "AssignmentResponse",
    "AssignmentTransfer",
    "AssignmentUpdate",
    "ClaimsError",
    "ContextAssignmentSummary",
    "Principal",
    "ResolvedContextsResponse",
    "UserAssignmentSummary",
    "parse_claims",
]
