"""Router registrations."""

from fastapi import APIRouter

from context_access.api.routers import access, assignments, contexts, health


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router, tags=["health"])
    router.include_router(assignments.router, prefix="/api/v1/assignments", tags=["assignments"])
    router.include_router(contexts.router, prefix="/api/v1", tags=["contexts"])
    router.include_router(access.router, prefix="/api/v1/access", tags=["access"])
    return router
