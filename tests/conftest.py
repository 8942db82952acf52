"""
tests/conftest.py -- Shared test fixtures.

This module provides:
  - make_store(): isolated named shared-memory SQLite UserStore
  - _patch_lifespan(): wires test services into app.state, bypassing real startup
  - make_client: factory fixture yielding a TestClient with optional Settings overrides
  - client: TestClient with default test settings
  - flow: AuthFlow over a fresh store, for unit tests without HTTP

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

Env vars must be set before any app import: get_settings() is cached and
api/main.py reads it at import time. BCRYPT_ROUNDS=4 keeps hashing fast.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable, Generator, Iterator
from contextlib import asynccontextmanager, contextmanager

# CRITICAL: Set env before any api/auth/core import.
os.environ.setdefault("JWT_SECRET", "test-secret-key-0123456789abcdef0123456789")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, build_services
from auth.flow import AuthFlow
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings, get_settings

TEST_SECRET = os.environ["JWT_SECRET"]

# Rate limits are exercised by one dedicated test; everything else runs unthrottled.
limiter.enabled = False


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_store() -> UserStore:
    """Create an isolated named shared-memory UserStore.

    The random suffix keeps tests from seeing each other's users.
    """
    return UserStore(db_url=f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(settings: Settings, store: UserStore):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        build_services(app, settings, store)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Iterator[UserStore]:
    s = make_store()
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(secret=TEST_SECRET, expire_seconds=86400)


@pytest.fixture
def flow(store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> AuthFlow:
    return AuthFlow(store, hasher, tokens)


@pytest.fixture
def make_client() -> Iterator[Callable[..., contextmanager]]:
    """Factory: `with make_client(environment="production") as (client, store): ...`

    Overrides are applied on top of the environment-derived test settings.
    """

    @contextmanager
    def _make(**overrides) -> Generator[tuple[TestClient, UserStore], None, None]:
        settings = get_settings().model_copy(update=overrides) if overrides else get_settings()
        user_store = make_store()
        app.router.lifespan_context = _patch_lifespan(settings, user_store)
        try:
            with TestClient(app, raise_server_exceptions=True) as test_client:
                yield test_client, user_store
        finally:
            user_store.close()

    yield _make


@pytest.fixture
def client(make_client) -> Iterator[TestClient]:
    with make_client() as (test_client, _store):
        yield test_client


# ---------------------------------------------------------------------------
# Shared data
# ---------------------------------------------------------------------------


@pytest.fixture
def jane() -> dict:
    """Registration body with an email that needs normalizing."""
    return {"name": "Jane Doe", "email": "JANE@Test.com ", "password": "secret123"}


@pytest.fixture
def set_cookies() -> Callable[..., list[str]]:
    """Return a helper that lists all Set-Cookie values of an httpx or Starlette response."""

    def _get(resp) -> list[str]:
        headers = resp.headers
        if hasattr(headers, "get_list"):
            return headers.get_list("set-cookie")
        return headers.getlist("set-cookie")

    return _get
