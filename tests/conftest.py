"""Pytest configuration and shared fixtures.

Settings are read from the environment once, so the test defaults below are
set before anything from ``infoline`` is imported.
"""

import os

os.environ.setdefault("INFOLINE_DATABASE_URL", "sqlite://")
os.environ.setdefault("INFOLINE_NOTIFICATION_TRANSPORT", "disabled")
os.environ.setdefault("INFOLINE_SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from infoline.db.base import Base
import infoline.db.models  # noqa: F401  (registers the tables)
from infoline.services.notifications import DeferredNotifier

from tests.fakes import RecordingNotifier


@pytest.fixture
def engine():
    """A fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    """Records what the API would have sent."""
    return RecordingNotifier()


@pytest.fixture
def client(db_session, notifier):
    """Test client sharing the test's database session."""
    from infoline.api.deps import get_db, get_notifier
    from infoline.api.main import app

    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_notifier] = lambda: DeferredNotifier(notifier)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
