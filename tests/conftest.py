"""Shared fixtures for the test suite."""

import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_REQUESTS", "false")
os.environ.setdefault(
    "LOG_DIR", str(Path(tempfile.gettempdir()) / "learngrow-test-logs")
)

from cassandra.cluster import Session  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from learngrow.auth.security import create_access_token  # noqa: E402

from factories import START, FakeResult, FixedClock  # noqa: E402


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen at 2024-01-01T00:00Z."""
    return FixedClock(START)


@pytest.fixture
def mock_session():
    """Mock Cassandra session; every prepared statement is a distinct Mock."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda *_args, **_kwargs: Mock())
    # Make aexecute awaitable (cassandra-asyncio-driver)
    session.aexecute = AsyncMock(return_value=FakeResult())
    return session


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def user_token(user_id: UUID) -> str:
    return create_access_token(
        {"sub": str(user_id), "email": "student@example.com", "role": "student"}
    )


@pytest.fixture
def admin_token() -> str:
    return create_access_token(
        {"sub": str(uuid4()), "email": "admin@example.com", "role": "admin"}
    )


@pytest.fixture
def app():
    from learngrow.main import app as application

    yield application

    for name in ("purchase_service", "combo_service", "entitlement_service"):
        if hasattr(application.state, name):
            delattr(application.state, name)


@pytest.fixture
def client(app) -> Iterator[TestClient]:
    """HTTP client without lifespan (no Cassandra/Redis)."""
    yield TestClient(app)
