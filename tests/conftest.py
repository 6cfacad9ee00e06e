"""
tests/conftest.py -- Shared fixtures for the CRM console tests.

This module provides:
  - token_store: isolated in-memory TokenStore per test
  - demo_client: TestClient over the FastAPI demo backend (fresh seed data)
  - admin_headers: Authorization header for the seeded admin
  - reset_settings: clears the get_settings() cache around a test that
    changes environment variables

Test doubles (fake responses, the TestClient transport) live in tests/helpers.py.

DEBUG must be set before any core import so get_settings() generates the
demo backend's SECRET_KEY in dev mode.
"""

from __future__ import annotations

import os
from collections.abc import Generator

os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.store import TokenStore
from core.config import get_settings
from tests.helpers import memory_db_url

# ---------------------------------------------------------------------------
# Token store
# ---------------------------------------------------------------------------


@pytest.fixture()
def token_store() -> Generator[TokenStore, None, None]:
    store = TokenStore(db_url=memory_db_url(), key="auth-token")
    yield store
    store.close()


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def reset_settings() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ---------------------------------------------------------------------------
# Demo backend
# ---------------------------------------------------------------------------


@pytest.fixture()
def demo_client() -> Generator[TestClient, None, None]:
    """TestClient over the demo backend. The lifespan seeds a fresh DemoStore per client."""
    limiter.reset()
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture()
def admin_headers(demo_client: TestClient) -> dict[str, str]:
    resp = demo_client.post("/v1/auth/login", json={"email": "admin@example.com", "password": "admin123"})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['token']}"}
