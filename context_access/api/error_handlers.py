"""Exception handlers for the FastAPI app."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from context_access.schemas.claims import ClaimsError
from context_access.services.assignments import (
    AssignmentNotFoundError,
    AssignmentValidationError,
    DuplicateAssignmentError,
    ImmutableFieldError,
    RoleNotFoundError,
    UserNotFoundError,
)
from context_access.services.context_resolver import ContextResolutionError
from context_access.services.context_validator import (
    ContextNotFoundError,
    UnsupportedContextKindError,
    WrongTenantError,
)

LOGGER = logging.getLogger("context_access.api")

_STATUS_BY_ERROR = (
    (ClaimsError, 401),
    (AssignmentValidationError, 400),
    (UnsupportedContextKindError, 400),
    (AssignmentNotFoundError, 404),
    (ContextNotFoundError, 404),
    (UserNotFoundError, 404),
    (RoleNotFoundError, 404),
    (WrongTenantError, 403),
    (DuplicateAssignmentError, 409),
    (ImmutableFieldError, 409),
)


def register_exception_handlers(app: FastAPI) -> None:
    async def domain_error_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: WPS430
        status_code = next(code for error, code in _STATUS_BY_ERROR if isinstance(exc, error))
        return JSONResponse(
            status_code=status_code,
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    for error, _ in _STATUS_BY_ERROR:
        app.add_exception_handler(error, domain_error_handler)

    @app.exception_handler(ContextResolutionError)
    async def resolution_error_handler(request: Request, exc: ContextResolutionError) -> JSONResponse:  # noqa: WPS430
        LOGGER.error("resolution_unavailable", extra={"path": request.url.path})
        return JSONResponse(
            status_code=503,
            content={"detail": "Access resolution unavailable", "error": type(exc).__name__},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: WPS430
        return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})
