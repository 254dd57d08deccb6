"""
tests/conftest.py -- Shared test fixtures for tracker-auth.

This module provides:
  - FakeClock / clock: a controllable UTC clock for expiry tests
  - auth_config: AuthConfig with a fixed secret, 1h TTL, bcrypt rounds=4
  - store: an isolated in-memory UserStore per test
  - api_client: TestClient over the real app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

Environment variables must be set before any api/ or core/ import so
get_settings() picks them up: DEBUG auto-generates SECRET_KEY, the test host
is allowed through TrustedHostMiddleware, and rate limits are raised far
above anything a test run reaches.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("REGISTER_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import SingletonThreadPool

from api.main import app
from auth.config import AuthConfig
from auth.store import UserStore

TEST_SECRET = "test-secret-key-for-hs256-signing-0123456789abcdef"


class FakeClock:
    """Callable clock that only moves when advance() is called."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def auth_config(clock: FakeClock) -> AuthConfig:
    return AuthConfig(secret_key=TEST_SECRET, token_ttl_seconds=3600, bcrypt_rounds=4, clock=clock)


def _make_test_store(name: str) -> UserStore:
    """Create an isolated named shared-memory SQLite store.

    SingletonThreadPool keeps one connection per thread open for the life of
    the store, which keeps the shared in-memory database alive.
    """
    return UserStore(
        f"sqlite:///file:test_auth_{name}?mode=memory&cache=shared&uri=true",
        poolclass=SingletonThreadPool,
    )


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = _make_test_store(uuid.uuid4().hex)
    yield s
    s.close()


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, config: AuthConfig):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store and config into app.state so TestClient routes see
    isolated test state rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.auth_config = config
        yield

    return test_lifespan


@pytest.fixture
def api_client(store: UserStore, auth_config: AuthConfig) -> Generator[TestClient, None, None]:
    """TestClient over the real FastAPI app with an isolated store and fake clock."""
    app.router.lifespan_context = _patch_lifespan(store, auth_config)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
