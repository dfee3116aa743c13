"""
tests/conftest.py -- Shared test fixtures for the user API.

This module provides:
  - make_store(): an isolated named shared-memory AccountStore
  - _patch_lifespan(): wires a test store and token service into app.state,
    bypassing the real startup
  - store: a bare AccountStore for unit tests
  - api: a TestClient plus a seeded admin and staff account with tokens

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.

Environment must be set before any app import: DEBUG lets get_settings()
auto-generate SECRET_KEY, and the raised rate limits keep the many logins
in this suite from tripping the limiter.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass

# CRITICAL: Set before any auth/core/api import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("RATE_LIMIT", "100000 per minute")
os.environ.setdefault("LOGIN_RATE_LIMIT", "100000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Account
from auth.store import AccountStore
from auth.tokens import TokenService
from core.config import get_settings

# bcrypt's minimum cost; keeps the suite fast.
TEST_ROUNDS = 4


def account_fields(**overrides) -> dict:
    """Valid snake_case account input for store-level tests."""
    fields = {
        "first_name": "John",
        "last_name": "Doe",
        "middle_initial": "M",
        "email": "john.doe@smu.edu.ph",
        "password": "password123",
        "age": 25,
        "gender": "male",
    }
    fields.update(overrides)
    return fields


def account_body(**overrides) -> dict:
    """Valid camelCase request body for HTTP tests."""
    body = {
        "firstName": "John",
        "lastName": "Doe",
        "email": "john@smu.edu.ph",
        "password": "password123",
        "age": 25,
        "gender": "male",
    }
    body.update(overrides)
    return body


def make_store() -> AccountStore:
    url = f"sqlite:///file:test_accounts_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    return AccountStore(db_url=url, bcrypt_rounds=TEST_ROUNDS)


def _patch_lifespan(store: AccountStore, tokens: TokenService):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.account_store = store
        app.state.token_service = tokens
        yield

    return test_lifespan


@pytest.fixture
def store() -> Generator[AccountStore, None, None]:
    s = make_store()
    yield s
    s.close()


@dataclass
class ApiContext:
    client: TestClient
    store: AccountStore
    tokens: TokenService
    admin: Account
    admin_token: str
    staff: Account
    staff_token: str

    def auth(self, token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}"}

    @property
    def admin_headers(self) -> dict[str, str]:
        return self.auth(self.admin_token)

    @property
    def staff_headers(self) -> dict[str, str]:
        return self.auth(self.staff_token)


@pytest.fixture
def api() -> Generator[ApiContext, None, None]:
    """Yield an ApiContext backed by a fresh in-memory store.

    The TestClient uses the real FastAPI app with a patched lifespan so tests
    hit real route handlers, dependencies, and exception handlers.
    """
    s = make_store()
    tokens = TokenService.from_settings(get_settings())

    admin = s.create(
        account_fields(
            first_name="Admin",
            last_name="User",
            middle_initial="A",
            email="admin.user@smu.edu.ph",
            password="admin123",
            age=30,
            role="admin",
        )
    )
    staff = s.create(
        account_fields(first_name="Jane", last_name="Staff", email="jane.staff@smu.edu.ph", gender="female")
    )

    app.router.lifespan_context = _patch_lifespan(s, tokens)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiContext(
            client=client,
            store=s,
            tokens=tokens,
            admin=admin,
            admin_token=tokens.issue(admin),
            staff=staff,
            staff_token=tokens.issue(staff),
        )

    s.close()
