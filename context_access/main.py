"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from context_access.api.error_handlers import register_exception_handlers
from context_access.api.routers import get_api_router
from context_access.core.config import AppSettings, get_settings
from context_access.core.database import create_db_engine, create_session_factory
from context_access.core.logging import configure_logging
from context_access.models import Base


@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: D401
    """Application lifespan context for startup/shutdown hooks."""

    settings: AppSettings = app.state.settings
    engine = app.state.engine
    # SQLite backs local runs and tests; real databases are migrated with alembic.
    if engine.dialect.name == "sqlite" and settings.environment in ("local", "test"):
        Base.metadata.create_all(bind=engine)

    yield

    engine.dispose()


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Application factory. The engine and session factory live on ``app.state``."""

    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Context Access Resolution Service",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.engine = create_db_engine(settings)
    app.state.session_factory = create_session_factory(app.state.engine)

    register_exception_handlers(app)
    app.include_router(get_api_router())
    return app
