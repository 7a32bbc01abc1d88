"""Database engine and session management."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator
from urllib.parse import urlparse

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from context_access.core.config import AppSettings


def _resolve_sqlite_path(database_url: str) -> None:
    """Ensure the parent directory for a SQLite database exists."""

    parsed = urlparse(database_url)
    if parsed.scheme != "sqlite":
        return

    if parsed.path in ("", ":memory:", "/:memory:"):
        return

    # sqlite:///./data/x.db parses to "/./data/x.db"; sqlite:////abs/x.db to "//abs/x.db"
    raw_path = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
    db_dir = Path(raw_path).expanduser().resolve().parent
    db_dir.mkdir(parents=True, exist_ok=True)


WRITE_LOCK_OPTION = "sqlite_write_lock"


def _use_immediate_transactions(engine: Engine) -> None:
    """Hand transaction control to SQLAlchemy; writers flagged with WRITE_LOCK_OPTION lock up front."""

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):  # noqa: ANN001
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(connection):  # noqa: ANN001
        if connection.get_execution_options().get(WRITE_LOCK_OPTION):
            connection.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            connection.exec_driver_sql("BEGIN")


def create_db_engine(settings: AppSettings) -> Engine:
    url = settings.database_url
    if url.startswith("sqlite"):
        _resolve_sqlite_path(url)
        engine_kwargs: dict[str, object] = {
            "future": True,
            "echo": settings.sql_echo,
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
        if url.endswith(":memory:") or url == "sqlite://":
            engine_kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **engine_kwargs)
        _use_immediate_transactions(engine)
    else:
        engine = create_engine(
            url,
            future=True,
            echo=settings.sql_echo,
            pool_pre_ping=True,
        )
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
        future=True,
        class_=Session,
    )


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope for requests, scripts and tests."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def begin_write(session: Session) -> None:
    """Start the session's transaction holding the SQLite write lock.

    Reads keep a deferred ``BEGIN`` and never block each other. A session that
    is already inside a transaction is left as it is.
    """

    if not session.in_transaction():
        session.connection(execution_options={WRITE_LOCK_OPTION: True})
