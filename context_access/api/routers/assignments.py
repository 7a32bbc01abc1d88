"""User assignment endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from context_access.api.dependencies import get_assignment_service, get_principal
from context_access.models.assignment import ContextKind
from context_access.schemas.assignment import (
    AssignmentBulkCreate,
    AssignmentCreate,
    AssignmentFilters,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentTransfer,
    AssignmentUpdate,
)
from context_access.schemas.claims import Principal
from context_access.services.assignments import AssignmentService

router = APIRouter()


@router.post(
    "",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_assignment(
    payload: AssignmentCreate,
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> AssignmentResponse:
    assignment = service.create(payload, actor=principal)
    return AssignmentResponse.model_validate(assignment, from_attributes=True)


@router.post(
    "/bulk",
    response_model=List[AssignmentResponse],
    status_code=status.HTTP_201_CREATED,
)
def bulk_create_assignments(
    payload: AssignmentBulkCreate,
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> List[AssignmentResponse]:
    assignments = service.bulk_create(payload, actor=principal)
    return [AssignmentResponse.model_validate(item, from_attributes=True) for item in assignments]


@router.post(
    "/transfer",
    response_model=List[AssignmentResponse],
)
def transfer_assignments(
    payload: AssignmentTransfer,
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> List[AssignmentResponse]:
    assignments = service.transfer(payload, actor=principal)
    return [AssignmentResponse.model_validate(item, from_attributes=True) for item in assignments]


@router.get(
    "",
    response_model=AssignmentListResponse,
)
def list_assignments(
    user_id: Optional[int] = Query(default=None),
    role_id: Optional[int] = Query(default=None),
    context_type: Optional[ContextKind] = Query(default=None),
    context_id: Optional[int] = Query(default=None),
    is_primary: Optional[bool] = Query(default=None),
    trade_specialization: Optional[str] = Query(default=None),
    active_only: bool = Query(default=False),
    include_deleted: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1),
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> AssignmentListResponse:
    filters = AssignmentFilters(
        user_id=user_id,
        role_id=role_id,
        context_type=context_type,
        context_id=context_id,
        is_primary=is_primary,
        trade_specialization=trade_specialization,
        active_only=active_only,
        include_deleted=include_deleted,
        page=page,
        page_size=page_size,
    )
    assignments, total, page, page_size = service.list(filters, tenant_id=principal.tenant_id)
    return AssignmentListResponse(
        assignments=[AssignmentResponse.model_validate(item, from_attributes=True) for item in assignments],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/{assignment_id}",
    response_model=AssignmentResponse,
)
def get_assignment(
    assignment_id: int,
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> AssignmentResponse:
    assignment = service.get(assignment_id, tenant_id=principal.tenant_id)
    return AssignmentResponse.model_validate(assignment, from_attributes=True)


@router.patch(
    "/{assignment_id}",
    response_model=AssignmentResponse,
)
def update_assignment(
    assignment_id: int,
    payload: AssignmentUpdate,
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> AssignmentResponse:
    assignment = service.update(assignment_id, payload, actor=principal)
    return AssignmentResponse.model_validate(assignment, from_attributes=True)


@router.delete(
    "/{assignment_id}",
    status_code=status.HTTP_200_OK,
)
def delete_assignment(
    assignment_id: int,
    service: AssignmentService = Depends(get_assignment_service),
    principal: Principal = Depends(get_principal),
) -> dict[str, object]:
    service.delete(assignment_id, actor=principal)
    return {"status": "deleted", "assignment_id": assignment_id}
