"""User assignment schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from context_access.models.assignment import ContextKind


class AssignmentFields(BaseModel):
    role_id: int = Field(..., gt=0)
    context_type: ContextKind
    context_id: int = Field(..., gt=0)
    trade_specialization: Optional[str] = Field(default=None, max_length=120)
    is_primary: bool = False
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None


class AssignmentCreate(AssignmentFields):
    model_config = ConfigDict(extra="forbid")

    user_id: int = Field(..., gt=0)


class AssignmentBulkCreate(AssignmentFields):
    model_config = ConfigDict(extra="forbid")

    user_ids: List[int] = Field(..., min_length=1)


class AssignmentUpdate(BaseModel):
    """Partial update. Identity fields are accepted only so they can be refused by name."""

    model_config = ConfigDict(extra="forbid")

    role_id: Optional[int] = Field(default=None, gt=0)
    trade_specialization: Optional[str] = Field(default=None, max_length=120)
    is_primary: Optional[bool] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None

    user_id: Optional[int] = None
    context_type: Optional[str] = None
    context_id: Optional[int] = None


class AssignmentTransfer(BaseModel):
    model_config = ConfigDict(extra="forbid")

    from_user_id: int = Field(..., gt=0)
    to_user_id: int = Field(..., gt=0)
    assignment_ids: List[int] = Field(default_factory=list)
    preserve_primary: bool = False


class AssignmentFilters(BaseModel):
    user_id: Optional[int] = None
    role_id: Optional[int] = None
    context_type: Optional[ContextKind] = None
    context_id: Optional[int] = None
    is_primary: Optional[bool] = None
    trade_specialization: Optional[str] = None
    active_only: bool = False
    include_deleted: bool = False
    page: int = Field(default=1, ge=1)
    page_size: Optional[int] = Field(default=None, ge=1)


class AssignmentResponse(BaseModel):
    id: int
    user_id: int
    role_id: int
    context_type: str
    context_id: int
    trade_specialization: Optional[str] = None
    is_primary: bool
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    is_deleted: bool
    created_at: datetime
    created_by: Optional[int] = None
    updated_at: datetime
    updated_by: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class AssignmentListResponse(BaseModel):
    assignments: List[AssignmentResponse]
    total: int
    page: int
    page_size: int


class UserAssignmentSummary(BaseModel):
    user_id: int
    org_id: int
    total_assignments: int
    active_assignments: int
    assignments_by_type: Dict[str, int]
    assignments: List[AssignmentResponse]


class ContextAssignmentSummary(BaseModel):
    context_type: str
    context_id: int
    org_id: int
    assignments: List[AssignmentResponse]
