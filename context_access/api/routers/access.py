"""Access decision endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from context_access.api.dependencies import get_access_service, get_principal
from context_access.schemas.access import AccessDecisionResponse
from context_access.schemas.claims import Principal
from context_access.services.access import AccessDecisionService, DecisionKind, ResourceKind

router = APIRouter()


@router.get(
    "/{resource_kind}",
    response_model=AccessDecisionResponse,
    responses={403: {"model": AccessDecisionResponse}},
)
def decide_access(
    resource_kind: ResourceKind,
    scope_id: Optional[int] = Query(default=None, alias="location_id"),
    service: AccessDecisionService = Depends(get_access_service),
    principal: Principal = Depends(get_principal),
):
    decision = service.decide(principal, resource_kind, scope_id)
    body = AccessDecisionResponse(
        decision=decision.kind.value,
        resource_kind=resource_kind.value,
        context_ids=sorted(decision.context_ids) if decision.context_ids is not None else None,
        scope_id=decision.scope_id,
    )
    if decision.kind is DecisionKind.FORBIDDEN:
        return JSONResponse(status_code=403, content=body.model_dump())
    return body
