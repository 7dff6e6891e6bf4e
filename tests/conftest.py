"""
Pytest configuration and fixtures for StayDesk tests.
"""

import os
import tempfile

os.environ.setdefault("DB_URL", "sqlite:///./test.db")
os.environ.setdefault("APP_SECRET_KEY", "staydesk-test-secret")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel

from app.database.session import get_session
from app.main import app
from app.models import calendar_sync, import_models, property  # noqa: F401
from app.services.config_service import config_service
from app.services.session_service import session_service


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, seconds):
        from datetime import timedelta

        self.current = self.current + timedelta(seconds=seconds)


@pytest.fixture(scope="function")
def isolated_db_session():
    """Create an isolated database session for each test."""
    # Create temporary database file
    fd, temp_db = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create engine for this test
    engine = create_engine(f"sqlite:///{temp_db}", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(bind=engine)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, class_=Session)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()
        try:
            os.unlink(temp_db)
        except OSError:
            pass


@pytest.fixture
def client(isolated_db_session):
    """Create a test client with database dependency override."""

    def override_get_session():
        yield isolated_db_session

    app.dependency_overrides[get_session] = override_get_session

    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_settings():
    """Drop setting overrides made by a test."""
    yield
    config_service.reset()


@pytest.fixture
def tenant_id():
    return "tenant-a"


@pytest.fixture
def auth_headers(tenant_id):
    token = session_service.create_session(tenant_id, "user-1")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def clock():
    from datetime import datetime, timezone

    return FakeClock(datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_entry():
    """Factory for valid batch entries in wire format."""

    def _make_entry(**overrides):
        entry = {
            "title": "Beach House",
            "description": "House by the sea",
            "address": "1 Ocean Drive",
            "city": "Florianopolis",
            "category": "house",
            "bedrooms": 3,
            "bathrooms": 2,
            "maxGuests": 6,
            "basePrice": 200,
        }
        entry.update(overrides)
        return entry

    return _make_entry


@pytest.fixture
def make_batch(make_entry):
    """Factory for batch documents."""

    def _make_batch(*entries, **settings):
        return {
            "source": "test",
            "settings": settings,
            "properties": list(entries) if entries else [make_entry()],
        }

    return _make_batch
