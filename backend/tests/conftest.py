"""
Pytest configuration and shared fixtures.

The environment is pinned before the application package is imported so
the module-level settings and engine point at an in-memory database.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MAIL_ENABLED"] = "false"
os.environ["IDENTITY_TOKEN_SECRET"] = "test-identity-secret"
os.environ["IDENTITY_TOKEN_AUDIENCE"] = ""
os.environ["IDENTITY_TOKEN_ISSUER"] = ""
os.environ["REPORTING_TIMEZONE"] = "Asia/Seoul"
os.environ["GEOIP_DATABASE_PATH"] = ""
os.environ["BIGQUERY_GA_EVENTS_TABLE"] = ""

from datetime import datetime, timezone
from typing import Callable, Dict, Optional
from unittest.mock import MagicMock
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from leadconsole.core.database import get_db, init_db
from leadconsole.core.security import create_identity_token
from leadconsole.core.transactions import transaction
from leadconsole.main import app
from leadconsole.models import Lead, Role
from leadconsole.services.notifications import NotificationDispatcher, get_dispatcher
from leadconsole.services.role_directory import RoleDirectoryRepository


KST = ZoneInfo("Asia/Seoul")


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def db_session(engine) -> Session:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def dispatcher() -> MagicMock:
    """Stand-in notification sink that records calls."""
    return MagicMock(spec=NotificationDispatcher)


@pytest.fixture
def client(db_session, dispatcher) -> TestClient:
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed_roles(db_session) -> Callable[[Dict[str, Role]], None]:
    """Write identifier -> role pairs into the role directory."""
    def _seed(roles: Dict[str, Role]) -> None:
        repository = RoleDirectoryRepository(db_session)
        with transaction(db_session):
            for identifier, role in roles.items():
                repository.assign(identifier, role)
    return _seed


@pytest.fixture
def auth_headers() -> Callable[[str], Dict[str, str]]:
    def _headers(email: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_identity_token(email)}"}
    return _headers


_phone_counter = iter(range(10_000_000, 99_999_999))


def build_lead(
    name: str = "Kim",
    source: Optional[str] = "google",
    created_at: Optional[datetime] = None,
    is_defect: bool = False,
    downloaded_at: Optional[datetime] = None,
) -> Lead:
    """Unsaved lead with a unique phone number."""
    digits = f"010{next(_phone_counter):08d}"
    return Lead(
        name=name,
        phone_raw=f"{digits[:3]}-{digits[3:7]}-{digits[7:]}",
        phone_e164="+82" + digits[1:],
        region="Seoul",
        memo="",
        utm_source=source,
        created_at=created_at or datetime.now(timezone.utc),
        is_defect=is_defect,
        visited=False,
        procedure=False,
        download_count=0,
        downloaded_at=downloaded_at,
    )


@pytest.fixture
def make_lead(db_session) -> Callable[..., Lead]:
    """Persist a lead and return it."""
    def _make(**kwargs) -> Lead:
        lead = build_lead(**kwargs)
        db_session.add(lead)
        db_session.commit()
        return lead
    return _make
