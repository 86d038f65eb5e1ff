"""
Shared fixtures.

Each test gets a fresh in-memory SQLite database; the app's get_session
dependency is overridden to use it. Environment is pinned before the package
is imported because Settings reads it at import time.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from expense_api.database import get_session
from expense_api.main import create_app
from expense_api.models import category, expense, user  # noqa: F401  (register tables)


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="app")
def app_fixture(engine):
    app = create_app()

    def get_session_override():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = get_session_override
    return app


@pytest.fixture(name="client")
def client_fixture(app):
    return TestClient(app)


@pytest.fixture
def register(client):
    """Register a user through the API and return (user json, auth headers)."""

    def _register(name="Ann", email="ann@x.com", password="secret1"):
        resp = client.post("/auth/register", json={"name": name, "email": email, "password": password})
        assert resp.status_code == 201, resp.text
        data = resp.json()["data"]
        return data["user"], {"Authorization": f"Bearer {data['token']}"}

    return _register


@pytest.fixture
def auth_headers(register):
    _, headers = register()
    return headers
