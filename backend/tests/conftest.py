"""
Test configuration and fixtures for Gylde Entitlements.

Provides shared fixtures for unit, service and route tests. Service and
route tests run against an in-memory SQLite database through a thin async
wrapper around a synchronous SQLAlchemy session.
"""

import pytest
from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import gylde.infrastructure.db.models  # noqa: F401  (registers tables)
from gylde.infrastructure.payments.stripe_service import StripeService
from gylde.infrastructure.realtime.change_feed import ChangeFeed, get_change_feed


# =============================================================================
# Database Fixtures
# =============================================================================

class _AsyncSessionWrapper:
    """Exposes the AsyncSession methods the services use over a sync Session."""

    def __init__(self, sync_session) -> None:
        self._sync = sync_session

    @property
    def sync_session(self):
        return self._sync

    async def execute(self, *args, **kwargs):
        return self._sync.execute(*args, **kwargs)

    async def get(self, *args, **kwargs):
        return self._sync.get(*args, **kwargs)

    def add(self, obj) -> None:
        self._sync.add(obj)

    def add_all(self, objs) -> None:
        self._sync.add_all(objs)

    async def delete(self, obj) -> None:
        self._sync.delete(obj)

    async def flush(self) -> None:
        self._sync.flush()

    async def commit(self) -> None:
        self._sync.commit()

    async def rollback(self) -> None:
        self._sync.rollback()

    async def close(self) -> None:
        self._sync.close()


@pytest.fixture
def session():
    """Fresh in-memory database per test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    SQLModel.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    sync_session = SessionLocal()
    try:
        yield _AsyncSessionWrapper(sync_session)
    finally:
        sync_session.close()
        engine.dispose()


@pytest.fixture(autouse=True)
def fresh_change_feed():
    """Each test gets its own process-wide change feed."""
    get_change_feed.cache_clear()
    yield
    get_change_feed.cache_clear()


@pytest.fixture
def feed() -> ChangeFeed:
    return get_change_feed()


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_stripe_service():
    """StripeService double; coroutine methods become AsyncMocks."""
    service = MagicMock(spec=StripeService)
    service.plan_for_price.return_value = None
    return service


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application, with overrides reset afterwards."""
    from gylde.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client."""
    return TestClient(app)


@pytest.fixture
def api(app, session, mock_stripe_service):
    """
    App wired to the test database and the Stripe double.

    Returns a helper that sets the authenticated caller.
    """
    from gylde.api.dependencies import AuthenticatedUser, get_current_user
    from gylde.infrastructure.db.database import get_session
    from gylde.infrastructure.payments.stripe_service import get_stripe_service

    async def _session_override():
        yield session

    app.dependency_overrides[get_session] = _session_override
    app.dependency_overrides[get_stripe_service] = lambda: mock_stripe_service

    def login_as(user_id: str, email: str = None) -> None:
        app.dependency_overrides[get_current_user] = (
            lambda: AuthenticatedUser(user_id=user_id, email=email)
        )

    return login_as


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def owner_id() -> str:
    return "owner-0001"


@pytest.fixture
def requester_id() -> str:
    return "requester-0001"
