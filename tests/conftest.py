"""Pytest configuration and fixtures."""

import os
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import src.services.realtime as realtime_module
from src.config import get_settings
from src.database import Base, get_db
from src.main import app


class AuthHeaders(dict):
    """Dict subclass that also stores the registered user's id, email and username."""

    def __init__(
        self,
        *args,
        user_id: int | None = None,
        email: str | None = None,
        username: str | None = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email
        self.username = username


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace(
        "/growth_tracker", "/growth_tracker_test"
    )
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture(scope="function", autouse=True)
def mock_redis(monkeypatch):
    """Replace the shared Redis client. Cache reads miss and publishes reach one receiver."""
    redis_client = MagicMock()
    redis_client.get.return_value = None
    redis_client.getdel.return_value = None
    redis_client.publish.return_value = 1
    redis_client.pipeline.return_value.execute.return_value = [[], 0]
    monkeypatch.setattr(realtime_module, "_sync_redis", redis_client)
    return redis_client


@pytest.fixture(scope="function", autouse=True)
def media_root(tmp_path, monkeypatch):
    """Store uploaded story photos in a temporary directory."""
    settings = get_settings()
    monkeypatch.setattr(settings, "media_root", str(tmp_path))
    monkeypatch.setattr(settings, "media_base_url", "http://testserver/media")
    return tmp_path


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register_user(client, username: str, email: str | None = None) -> AuthHeaders:
    """Register a user through the API and return their auth headers."""
    email = email or f"{username}@example.com"
    response = client.post(
        "/api/v1/auth/register",
        json={"email": email, "username": username, "password": "testpass123"},
    )
    assert response.status_code == 201
    data = response.json()
    token = data["access_token"]

    return AuthHeaders(
        {"Authorization": f"Bearer {token}"},
        user_id=data["user"]["id"],
        email=email,
        username=username,
    )


@pytest.fixture
def auth_headers(client):
    """Create a user and return auth headers with user info."""
    return register_user(client, "testuser", "test@example.com")


@pytest.fixture
def other_headers(client):
    """A second registered user."""
    return register_user(client, "otheruser", "other@example.com")


@pytest.fixture
def make_user(client):
    """Factory registering extra users by username."""

    def _make_user(username: str) -> AuthHeaders:
        return register_user(client, username)

    return _make_user


@pytest.fixture
def make_private(client):
    """Factory switching a user's profile to private."""

    def _make_private(headers: AuthHeaders) -> None:
        response = client.put(
            "/api/v1/users/me/privacy", headers=headers, json={"is_private": True}
        )
        assert response.status_code == 200

    return _make_private


@pytest.fixture
def follow(client):
    """Factory following target as follower; returns the resulting edge state."""

    def _follow(follower: AuthHeaders, target: AuthHeaders) -> str:
        response = client.post(f"/api/v1/users/{target.user_id}/follow", headers=follower)
        assert response.status_code == 200
        return response.json()["state"]

    return _follow
