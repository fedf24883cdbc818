"""
tests/conftest.py -- Shared test fixtures for the auth service.

This module provides (plain helpers live in tests/helpers.py):
  - store / notifier / service: isolated in-memory stack for unit tests
  - api_client: TestClient wired to a patched lifespan for integration tests

Design: the integration store uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread.

DEBUG and RATE_LIMIT_ENABLED must be set before any api/auth/core import so
get_settings() auto-generates SECRET_KEY and the shared limiter is built
disabled.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: must run before importing api.* / core.config.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.service import AuthService
from auth.store import UserStore
from core.config import Settings, get_settings
from tests.helpers import RecordingNotifier

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _patch_lifespan(service: AuthService):
    """Return a lifespan that installs pre-built test collaborators on app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = service.store
        app.state.auth_service = service
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(store: UserStore, notifier: RecordingNotifier, settings: Settings) -> AuthService:
    return AuthService(store, notifier, settings)


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(settings: Settings) -> Generator[tuple[TestClient, AuthService, RecordingNotifier], None, None]:
    """Yield (client, service, notifier) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers but use an isolated in-memory store and a
    recording notifier instead of SMTP.
    """
    db_name = f"test_auth_{uuid.uuid4().hex[:8]}"
    user_store = UserStore(f"sqlite:///file:{db_name}?mode=memory&cache=shared&uri=true")
    recorder = RecordingNotifier()
    service = AuthService(user_store, recorder, settings)

    app.router.lifespan_context = _patch_lifespan(service)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, service, recorder

    user_store.close()
