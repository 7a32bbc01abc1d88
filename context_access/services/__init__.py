"""Business logic service layer."""

from context_access.services.access import AccessDecision, AccessDecisionService, DecisionKind, ResourceKind  # noqa: F401
from context_access.services.assignments import AssignmentService  # noqa: F401
from context_access.services.context_resolver import ContextResolver  # noqa: F401
from context_access.services.context_validator import ContextValidator  # noqa: F401
