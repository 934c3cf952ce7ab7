from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext

from chatvault.config import Settings
from chatvault.main import create_app
from chatvault.security import PasslibHasher
from chatvault.sessions import InMemorySessionBackend, SessionManager


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(
        app_env="development",
        database_url="sqlite://",
        session_backend="memory",
        session_secret="test-secret",
        default_locale="en",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def hasher():
    # low cost factor keeps the suite fast
    return PasslibHasher(CryptContext(schemes=["bcrypt"], bcrypt__rounds=4))


@pytest.fixture
def sessions(clock):
    return SessionManager(InMemorySessionBackend(), clock=clock)


@pytest.fixture
def app(settings, sessions, hasher):
    return create_app(settings, sessions=sessions, password_hasher=hasher)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db(app):
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def register(client):
    def _register(username="alice", email="alice@example.com", password="pw123"):
        return client.post("/api/register", json={"username": username, "email": email, "password": password})

    return _register
