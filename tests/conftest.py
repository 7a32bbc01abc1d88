import os
from dataclasses import dataclass, field
from datetime import date
from itertools import count
from typing import Iterator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

os.environ.setdefault("CTXA_ENVIRONMENT", "test")
os.environ.setdefault("CTXA_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CTXA_LOG_JSON", "false")

from context_access.core.config import AppSettings, get_settings  # noqa: E402

get_settings.cache_clear()

from context_access.core.database import create_db_engine, create_session_factory  # noqa: E402
from context_access.main import create_app  # noqa: E402
from context_access.models import Base  # noqa: E402
from context_access.models.assignment import UserAssignment  # noqa: E402
from context_access.models.registry import Location, Organization, Project, Role, User  # noqa: E402
from context_access.schemas.claims import Principal  # noqa: E402


@dataclass
class Seed:
    """Writes registry rows and assignments directly, committing each one."""

    session: Session
    _sequence: count = field(default_factory=lambda: count(1))

    def _add(self, row):  # noqa: ANN001, ANN202
        self.session.add(row)
        self.session.commit()
        return row.id

    def org(self, name: str = "Acme Builders", *, deleted: bool = False) -> int:
        return self._add(Organization(name=name, is_deleted=deleted))

    def user(self, org_id: int, *, super_admin: bool = False, deleted: bool = False, email: Optional[str] = None) -> int:
        return self._add(
            User(
                org_id=org_id,
                email=email or f"user-{next(self._sequence)}@example.com",
                is_super_admin=super_admin,
                is_deleted=deleted,
            )
        )

    def role(self, name: str = "Project Engineer", org_id: Optional[int] = None, *, deleted: bool = False) -> int:
        return self._add(Role(name=name, org_id=org_id, is_deleted=deleted))

    def location(self, org_id: int, name: str = "Downtown Office", *, deleted: bool = False) -> int:
        return self._add(Location(org_id=org_id, name=name, is_deleted=deleted))

    def project(self, org_id: int, location_id: int, name: str = "Tower A", *, deleted: bool = False) -> int:
        return self._add(Project(org_id=org_id, location_id=location_id, name=name, is_deleted=deleted))

    def assignment(
        self,
        user_id: int,
        role_id: int,
        context_type: str,
        context_id: int,
        *,
        valid_from: Optional[date] = None,
        valid_until: Optional[date] = None,
        deleted: bool = False,
        is_primary: bool = False,
    ) -> int:
        return self._add(
            UserAssignment(
                user_id=user_id,
                role_id=role_id,
                context_type=context_type,
                context_id=context_id,
                valid_from=valid_from,
                valid_until=valid_until,
                is_deleted=deleted,
                is_primary=is_primary,
            )
        )


@pytest.fixture()
def settings() -> AppSettings:
    return AppSettings()


@pytest.fixture()
def engine(settings: AppSettings):  # noqa: ANN201
    engine = create_db_engine(settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session(engine) -> Iterator[Session]:  # noqa: ANN001
    session = create_session_factory(engine)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture()
def seed(session: Session) -> Seed:
    return Seed(session)


@pytest.fixture()
def tenant(seed: Seed) -> int:
    return seed.org()


@pytest.fixture()
def admin(seed: Seed, tenant: int) -> Principal:
    admin_id = seed.user(tenant, email="admin@example.com")
    return Principal(user_id=admin_id, tenant_id=tenant)


@pytest.fixture()
def app(settings: AppSettings):  # noqa: ANN201
    return create_app(settings)


@pytest.fixture()
def client(app) -> Iterator[TestClient]:  # noqa: ANN001
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def api_seed(app, client: TestClient) -> Iterator[Seed]:  # noqa: ANN001
    session = app.state.session_factory()
    yield Seed(session)
    session.close()


def headers_for(user_id: int, tenant_id: int, *, super_admin: bool = False) -> dict[str, str]:
    return {
        "X-User-Id": str(user_id),
        "X-Tenant-Id": str(tenant_id),
        "X-Super-Admin": "true" if super_admin else "false",
    }
