"""Access decision endpoint schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class AccessDecisionResponse(BaseModel):
    decision: str
    resource_kind: str
    context_ids: Optional[List[int]] = None
    scope_id: Optional[int] = None


class ResolvedContextsResponse(BaseModel):
    context_type: str
    context_ids: List[int]
