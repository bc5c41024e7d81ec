"""
tests/test_rate_limits.py -- Rate limiting on router endpoints.

conftest.py sets LOGIN_RATE_LIMIT=3/minute and DEFAULT_RATE_LIMIT=5/minute
before the limiter is built; the limiter itself starts disabled. The fixture
here switches it on and empties the counter store around each test.

Covers:
  - login: the 4th attempt in a minute is 429 with the error envelope
  - a default-limited route (GET /posts): the 6th request is 429
  - health is exempt
"""

from __future__ import annotations

import pytest

from api.limiter import limiter

POSTS = "/api/v1/posts"


@pytest.fixture()
def limited(api, monkeypatch):
    monkeypatch.setattr(limiter, "enabled", True)
    limiter.reset()
    yield api
    limiter.reset()


def test_login_limit_returns_429_envelope(limited) -> None:
    statuses = [limited.login("ghost@x.com", "bad-password").status_code for _ in range(4)]
    assert statuses == [401, 401, 401, 429]

    resp = limited.login("ghost@x.com", "bad-password")
    assert resp.status_code == 429
    assert resp.json() == {"success": False, "message": "Too many requests."}
    assert "retry-after" in resp.headers


def test_default_limit_on_router_endpoint(limited) -> None:
    statuses = [limited.client.get(POSTS).status_code for _ in range(6)]
    assert statuses == [200, 200, 200, 200, 200, 429]


def test_health_is_exempt(limited) -> None:
    assert {limited.client.get("/api/v1/health").status_code for _ in range(8)} == {200}


def test_disabled_limiter_never_trips(api) -> None:
    assert {api.login("ghost@x.com", "bad-password").status_code for _ in range(6)} == {401}
