"""SQLAlchemy ORM models for the context access service."""

from context_access.models.base import Base  # noqa: F401
from context_access.models.assignment import ContextKind, UserAssignment  # noqa: F401
from context_access.models.registry import Location, Organization, Project, Role, User  # noqa: F401
