"""Per-user and per-context views over assignments."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from context_access.api.dependencies import get_assignment_service, get_context_resolver, get_principal
from context_access.models.assignment import ContextKind
from context_access.schemas.access import ResolvedContextsResponse
from context_access.schemas.assignment import ContextAssignmentSummary, UserAssignmentSummary
from context_access.schemas.claims import Principal
from context_access.services.assignments import AssignmentService
from context_access.services.context_resolver import ContextResolver

router = APIRouter()


@router.get(
    "/users/{user_id}/assignments",
    response_model=UserAssignmentSummary,
)
def get_user_assignments(
    user_id: int,
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> UserAssignmentSummary:
    summary = service.user_summary(user_id, tenant_id=principal.tenant_id)
    return UserAssignmentSummary.model_validate(summary, from_attributes=True)


@router.get(
    "/contexts/{context_type}/{context_id}/assignments",
    response_model=ContextAssignmentSummary,
)
def get_context_assignments(
    context_type: ContextKind,
    context_id: int,
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> ContextAssignmentSummary:
    summary = service.context_assignments(context_type, context_id, tenant_id=principal.tenant_id)
    return ContextAssignmentSummary.model_validate(summary, from_attributes=True)


@router.get(
    "/me/contexts/{context_type}",
    response_model=ResolvedContextsResponse,
)
def get_my_contexts(
    context_type: ContextKind,
    resolver: ContextResolver = Depends(get_context_resolver),
    principal: Principal = Depends(get_principal),
) -> ResolvedContextsResponse:
    context_ids = resolver.resolve(principal.user_id, context_type, principal.tenant_id)
    return ResolvedContextsResponse(context_type=context_type.value, context_ids=sorted(context_ids))
