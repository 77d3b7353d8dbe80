"""
tests/conftest.py -- Shared test fixtures for Gatekeeper.

This module provides:
  - user_store / revocation_store / service: in-memory unit-test wiring
  - _make_test_stores(): isolated shared-memory DBs for API tests
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient with an admin token for API integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixtures because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to each
worker thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment must be set before any api/ import: api.limiter reads Settings at
import time, and Settings refuses to load without SECRET_KEY unless DEBUG=true.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager, suppress

# CRITICAL: Set before any api/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import RevocationStore, UserStore
from core.config import Settings

TEST_SECRET = "test-secret-key-0123456789abcdef-0123456789"
# Lowest bcrypt cost keeps the suite fast; cost is embedded per hash anyway.
TEST_ROUNDS = 4

# ---------------------------------------------------------------------------
# Unit-test wiring
# ---------------------------------------------------------------------------


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def revocation_store(user_store: UserStore) -> RevocationStore:
    return RevocationStore(engine=user_store.engine)


@pytest.fixture
def service(user_store: UserStore, revocation_store: RevocationStore) -> AuthService:
    return AuthService.build(
        users=user_store,
        revocation_store=revocation_store,
        secret_key=TEST_SECRET,
        expire_seconds=3600,
        bcrypt_rounds=TEST_ROUNDS,
    )


# ---------------------------------------------------------------------------
# API wiring
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, RevocationStore]:
    """Create an isolated named shared-memory SQLite store pair.

    Args:
        db_suffix: Unique string appended to the DB name so test modules don't
                   share state (e.g. the test module name).
    """
    url = f"sqlite:///file:test_auth_{db_suffix}?mode=memory&cache=shared&uri=true"
    user_store = UserStore(db_url=url)
    return user_store, RevocationStore(engine=user_store.engine)


def _patch_lifespan(settings: Settings, user_store: UserStore, service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine that keeps asyncio happy
    (a real asyncio.Task is required; MagicMock would fail on .cancel()).
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.user_store = user_store
        app.state.revocation_store = service.revocations.store
        app.state.auth_service = service
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()
        with suppress(asyncio.CancelledError):
            await app.state.purge_task

    return test_lifespan


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, str, int], None, None]:
    """Yield (client, admin_token, admin_id) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers and dependencies but use an isolated store. The
    admin is created directly in the store (self-registration cannot create
    admins) and a token is issued for use in Authorization headers.
    """
    user_store, revocation_store = _make_test_stores(request.module.__name__.replace(".", "_"))
    settings = Settings(_env_file=None, secret_key=TEST_SECRET, bcrypt_rounds=TEST_ROUNDS)
    service = AuthService.build(
        users=user_store,
        revocation_store=revocation_store,
        secret_key=settings.secret_key,
        expire_seconds=settings.token_expire_seconds,
        bcrypt_rounds=settings.bcrypt_rounds,
    )

    admin = user_store.create_user("testadmin", "admin@example.com", service.hasher.hash("Adminpass123"), Role.ADMIN)
    token = service.issuer.issue(admin.id, admin.role)

    app.router.lifespan_context = _patch_lifespan(settings, user_store, service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, token, admin.id

    user_store.close()


