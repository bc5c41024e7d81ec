"""
tests/conftest.py -- Shared test fixtures for Quill unit and integration tests.

This module provides:
  - make_stores(): isolated in-memory user + blog stores
  - make_codec(): a TokenCodec with fixed test secrets
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api: an ApiHarness (TestClient plus helpers) for route tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

DEBUG and RATE_LIMIT_ENABLED must be set before any core/auth/api import:
get_settings() is cached at first call, and the limiter reads it at import.
"""

from __future__ import annotations

import itertools
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any core/auth/api import so get_settings() generates
# dev secrets instead of raising. Limits stay off except in test_rate_limits.py,
# which switches the limiter on against these small values.
os.environ.setdefault("DEBUG", "true")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOGIN_RATE_LIMIT"] = "3/minute"
os.environ["DEFAULT_RATE_LIMIT"] = "5/minute"

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.models import Role, User
from auth.passwords import hash_password
from auth.session import SessionAuthority
from auth.store import UserStore
from auth.tokens import TokenCodec, TokenKind
from blog.store import BlogStore

ACCESS_SECRET = "a" * 32 + "-access-test-secret"
REFRESH_SECRET = "r" * 32 + "-refresh-test-secret"

_db_counter = itertools.count()


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def memory_url(name: str) -> str:
    """Return a fresh named shared-memory SQLite URL."""
    return f"sqlite:///file:test_{name}_{next(_db_counter)}?mode=memory&cache=shared&uri=true"


def make_stores(name: str) -> tuple[UserStore, BlogStore]:
    return UserStore(db_url=memory_url(f"users_{name}")), BlogStore(db_url=memory_url(f"blog_{name}"))


def make_codec(**overrides) -> TokenCodec:
    kwargs = {"access_secret": ACCESS_SECRET, "refresh_secret": REFRESH_SECRET}
    kwargs.update(overrides)
    return TokenCodec(**kwargs)


def _patch_lifespan(user_store: UserStore, blog_store: BlogStore, codec: TokenCodec):
    """Return an async context manager that replaces the real lifespan."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.blog_store = blog_store
        app.state.codec = codec
        app.state.authority = SessionAuthority(user_store, codec)
        yield

    return test_lifespan


# ---------------------------------------------------------------------------
# HTTP harness
# ---------------------------------------------------------------------------


class ApiHarness:
    """TestClient plus shortcuts for creating users and auth headers."""

    def __init__(self, client: TestClient, user_store: UserStore, blog_store: BlogStore, codec: TokenCodec) -> None:
        self.client = client
        self.user_store = user_store
        self.blog_store = blog_store
        self.codec = codec
        self._seq = itertools.count()

    def make_user(self, role: Role = Role.reader, name: str | None = None, password: str = "secret1") -> User:
        """Insert a user directly into the store (bypassing the role clamp)."""
        n = next(self._seq)
        return self.user_store.create(
            User(
                name=name or f"{role.value.title()} {n}",
                email=f"{role.value}{n}@example.com",
                password_hash=hash_password(password),
                role=role,
            )
        )

    def headers_for(self, user: User) -> dict[str, str]:
        token = self.codec.issue({"sub": user.id, "role": Role(user.role).value}, TokenKind.ACCESS)
        return {"Authorization": f"Bearer {token}"}

    def register(self, name: str, email: str, password: str = "secret1", role: str | None = None):
        body = {"name": name, "email": email, "password": password}
        if role is not None:
            body["role"] = role
        return self.client.post("/api/v1/auth/register", json=body)

    def login(self, email: str, password: str = "secret1"):
        return self.client.post("/api/v1/auth/login", json={"email": email, "password": password})


@pytest.fixture()
def codec_factory():
    """Return make_codec so tests can build codecs with overridden TTLs or secrets."""
    return make_codec


@pytest.fixture()
def codec() -> TokenCodec:
    return make_codec()


@pytest.fixture()
def stores() -> Generator[tuple[UserStore, BlogStore], None, None]:
    user_store, blog_store = make_stores("unit")
    yield user_store, blog_store
    blog_store.close()
    user_store.close()


@pytest.fixture()
def api() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness backed by fresh in-memory stores.

    Function-scoped so each test starts with empty tables and an empty
    cookie jar; the refresh cookie makes tests order-sensitive otherwise.
    """
    user_store, blog_store = make_stores("api")
    codec = make_codec()
    app.router.lifespan_context = _patch_lifespan(user_store, blog_store, codec)

    with TestClient(app, base_url="http://testserver", raise_server_exceptions=True) as client:
        yield ApiHarness(client, user_store, blog_store, codec)

    blog_store.close()
    user_store.close()
