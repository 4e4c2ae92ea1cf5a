"""
tests/conftest.py -- Shared test fixtures for the Conduit auth core.

This module provides:
  - FakeClock: a settable clock injected into AuthenticationService so expiry
    boundaries are tested without sleeping
  - store / service: an in-memory CredentialStore and a service over it
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

Environment must be set before any api/ or core/ import: the app reads
get_settings() at import time and Settings refuses to load without a key.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before importing api/ or core/.
os.environ.setdefault("SECRET_KEY", "test-signing-key-0123456789abcdef0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthenticationService
from auth.store import CredentialStore

TEST_KEY = b"k1-0123456789abcdef0123456789abcdef"
OTHER_KEY = b"k2-fedcba9876543210fedcba9876543210"
T0 = 1_700_000_000


class FakeClock:
    """Callable clock returning a settable epoch time."""

    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    s = CredentialStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(store: CredentialStore, clock: FakeClock) -> AuthenticationService:
    """Service with bcrypt at minimum cost and a one-day session."""
    return AuthenticationService(store, TEST_KEY, session_lifetime=86400, bcrypt_rounds=4, clock=clock)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: CredentialStore, auth_service: AuthenticationService):
    """Return a lifespan that wires test objects into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_service = auth_service
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request: pytest.FixtureRequest) -> Generator[tuple[TestClient, AuthenticationService], None, None]:
    """Yield (client, service) for API integration tests.

    One isolated shared-memory DB per test module; the module name keeps
    modules from seeing each other's users.
    """
    db_name = "test_auth_" + request.module.__name__.rsplit(".", 1)[-1]
    user_store = CredentialStore(db_url=f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    auth_service = AuthenticationService(user_store, TEST_KEY, bcrypt_rounds=4)

    app.router.lifespan_context = _patch_lifespan(user_store, auth_service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, auth_service

    user_store.close()
