from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from platepick.main import app
from platepick.db import Base, get_db
from platepick.deps import get_clock, get_tracker

# --- Test Database Setup ---

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool  # Share the single in-memory connection across sessions
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday 18:00 in the reference timezone
FIXED_NOW = datetime(2026, 10, 14, 18, 0, tzinfo=ZoneInfo("Asia/Ho_Chi_Minh"))


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def override_get_clock():
    return lambda: FIXED_NOW


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def reset_tracker():
    get_tracker().reset()
    yield
    get_tracker().reset()


@pytest.fixture
def client():
    """Test client with DB and clock overrides."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = override_get_clock
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    """Direct database session for setup."""
    session = TestingSessionLocal()
    yield session
    session.close()


import fakeredis
from platepick.infra import redis_client


@pytest.fixture(autouse=True)
def mock_redis():
    server = fakeredis.FakeServer()
    redis_client._redis_sync = fakeredis.FakeRedis(server=server, decode_responses=True)

    yield redis_client._redis_sync

    redis_client._redis_sync = None
