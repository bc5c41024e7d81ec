"""
tests/test_api_auth.py -- Integration tests for api/routes/v1/auth.py.

These tests exercise the full stack: routing -> validation -> session
authority -> store -> response serialization and cookie handling.

Coverage:
  - register: 201 + camelCase body + HttpOnly refresh cookie, admin clamp,
    duplicate email, validation errors as 400 with field list
  - login: success, wrong password and unknown email give the same 401
  - refresh: rotates the cookie, old cookie is then rejected, missing cookie
  - logout: clears the cookie, later refresh is rejected, needs access token
  - profile: returns the caller without secrets
  - the end-to-end register -> expire -> refresh -> retry flow
  - register -> login -> refresh with the login cookie -> that cookie is spent
"""

from __future__ import annotations

from datetime import timedelta

from api.main import app
from auth.models import Role
from auth.session import SessionAuthority
from auth.tokens import TokenKind

REGISTER = "/api/v1/auth/register"
REFRESH = "/api/v1/auth/refresh"
LOGOUT = "/api/v1/auth/logout"
PROFILE = "/api/v1/auth/profile"


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestRegister:
    def test_register_returns_token_and_sets_cookie(self, api) -> None:
        resp = api.register("Ana", "Ana@X.com", role="author")
        assert resp.status_code == 201
        data = resp.json()
        assert data["success"] is True
        assert data["accessToken"]
        assert data["user"]["email"] == "ana@x.com"
        assert data["user"]["role"] == "author"
        assert "refreshToken" not in data
        assert "passwordHash" not in data["user"]

        set_cookie = resp.headers["set-cookie"]
        assert set_cookie.startswith("refreshToken=")
        assert "HttpOnly" in set_cookie
        assert "samesite=strict" in set_cookie.lower()
        assert "Path=/api/v1/auth" in set_cookie
        assert "Max-Age=604800" in set_cookie
        assert resp.headers["cache-control"] == "no-store"

    def test_stored_refresh_is_a_fingerprint(self, api) -> None:
        resp = api.register("Ana", "ana@x.com")
        cookie = api.client.cookies.get("refreshToken")
        stored = api.user_store.find_by_email("ana@x.com")
        assert stored.refresh_token_hash == api.codec.fingerprint(cookie)
        assert stored.refresh_token_hash != cookie
        assert resp.status_code == 201

    def test_admin_self_registration_is_clamped(self, api) -> None:
        resp = api.register("Eve", "eve@x.com", role="admin")
        assert resp.status_code == 201
        assert resp.json()["user"]["role"] == "reader"

    def test_duplicate_email_case_insensitive(self, api) -> None:
        api.register("Ana", "ana@x.com")
        resp = api.register("Ana", "ANA@x.com")
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "User already exists."}

    def test_validation_errors_are_400_with_fields(self, api) -> None:
        resp = api.client.post(REGISTER, json={"name": "", "email": "not-an-email", "password": "123"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["message"] == "Request validation failed."
        fields = {e["field"] for e in body["errors"]}
        assert {"name", "email", "password"} <= fields

    def test_unknown_role_is_400(self, api) -> None:
        assert api.register("Ana", "ana@x.com", role="superuser").status_code == 400

    def test_password_over_bcrypt_limit_is_400(self, api) -> None:
        # 30 characters, 90 bytes
        assert api.register("Ana", "ana@x.com", password="€" * 30).status_code == 400


class TestLogin:
    def test_login_success(self, api) -> None:
        api.register("Ana", "ana@x.com", role="author")
        api.client.cookies.clear()
        resp = api.login("ANA@x.com")
        assert resp.status_code == 200
        data = resp.json()
        assert data["user"]["role"] == "author"
        claims = api.codec.verify(data["accessToken"], TokenKind.ACCESS)
        assert claims["sub"] == data["user"]["id"]
        assert api.client.cookies.get("refreshToken")

    def test_wrong_password_and_unknown_email_identical(self, api) -> None:
        api.register("Ana", "ana@x.com")
        wrong = api.login("ana@x.com", "bad-password")
        unknown = api.login("ghost@x.com", "secret1")
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"success": False, "message": "Invalid email or password."}
        assert "set-cookie" not in wrong.headers


class TestRefresh:
    def test_refresh_rotates_cookie(self, api) -> None:
        api.register("Ana", "ana@x.com")
        old_cookie = api.client.cookies.get("refreshToken")

        resp = api.client.post(REFRESH)
        assert resp.status_code == 200
        assert resp.json()["success"] is True
        assert resp.json()["accessToken"]
        new_cookie = api.client.cookies.get("refreshToken")
        assert new_cookie and new_cookie != old_cookie
        assert resp.headers["cache-control"] == "no-store"

        # Replaying the superseded token is rejected.
        api.client.cookies.clear()
        stale = api.client.post(REFRESH, cookies={"refreshToken": old_cookie})
        assert stale.status_code == 403
        assert stale.json() == {"success": False, "message": "Invalid refresh token."}

    def test_missing_cookie(self, api) -> None:
        resp = api.client.post(REFRESH)
        assert resp.status_code == 401
        assert resp.json()["message"] == "Refresh token required."

    def test_garbage_cookie(self, api) -> None:
        resp = api.client.post(REFRESH, cookies={"refreshToken": "garbage"})
        assert resp.status_code == 403
        assert resp.json()["message"] == "Invalid refresh token."

    def test_refresh_carries_current_role(self, api) -> None:
        resp = api.register("Bob", "bob@x.com")
        user = api.user_store.find_by_id(resp.json()["user"]["id"])
        user.role = Role.author
        api.user_store.save(user, fields=("role",))

        token = api.client.post(REFRESH).json()["accessToken"]
        assert api.codec.verify(token, TokenKind.ACCESS)["role"] == "author"


class TestLogout:
    def test_logout_clears_cookie_and_revokes(self, api) -> None:
        token = api.register("Ana", "ana@x.com").json()["accessToken"]
        old_cookie = api.client.cookies.get("refreshToken")

        resp = api.client.post(LOGOUT, headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "message": "Logged out successfully."}
        assert 'refreshToken=""' in resp.headers["set-cookie"] or "Max-Age=0" in resp.headers["set-cookie"]

        again = api.client.post(REFRESH, cookies={"refreshToken": old_cookie})
        assert again.status_code == 403

    def test_logout_twice(self, api) -> None:
        token = api.register("Ana", "ana@x.com").json()["accessToken"]
        assert api.client.post(LOGOUT, headers=_bearer(token)).status_code == 200
        assert api.client.post(LOGOUT, headers=_bearer(token)).status_code == 200

    def test_logout_requires_access_token(self, api) -> None:
        api.register("Ana", "ana@x.com")
        assert api.client.post(LOGOUT).status_code == 401


class TestProfile:
    def test_profile(self, api) -> None:
        token = api.register("Ana", "ana@x.com").json()["accessToken"]
        resp = api.client.get(PROFILE, headers=_bearer(token))
        assert resp.status_code == 200
        user = resp.json()["user"]
        assert user["name"] == "Ana"
        assert user["email"] == "ana@x.com"
        assert set(user) >= {"id", "role", "bio", "avatarUrl", "createdAt"}
        assert "passwordHash" not in user
        assert "refreshTokenHash" not in user

    def test_profile_of_deleted_user_is_404(self, api) -> None:
        ghost = api.codec.issue({"sub": "ghost", "role": "reader"}, TokenKind.ACCESS)
        resp = api.client.get(PROFILE, headers=_bearer(ghost))
        assert resp.status_code == 404


def test_end_to_end_expired_access_then_refresh(api, codec_factory) -> None:
    """Register as an author, let the access token lapse, refresh, retry."""
    short = codec_factory(access_ttl=timedelta(seconds=-1))
    app.state.codec = short
    app.state.authority = SessionAuthority(api.user_store, short)

    reg = api.register("Ana", "ana@x.com", role="author")
    assert reg.status_code == 201
    expired = reg.json()["accessToken"]
    post_body = {"title": "First", "content": "Hello world"}

    assert api.client.post("/api/v1/posts", json=post_body, headers=_bearer(expired)).status_code == 401

    # Server-side TTL back to normal; the refresh cookie is still valid.
    app.state.codec = api.codec
    app.state.authority = SessionAuthority(api.user_store, api.codec)
    refreshed = api.client.post(REFRESH)
    assert refreshed.status_code == 200
    fresh = refreshed.json()["accessToken"]

    created = api.client.post("/api/v1/posts", json=post_body, headers=_bearer(fresh))
    assert created.status_code == 201
    assert created.json()["data"]["slug"] == "first"


def test_register_login_refresh_then_login_cookie_is_spent(api) -> None:
    """Login after register, rotate the login cookie, then replay it."""
    reg = api.register("Ana", "ana@x.com")
    assert reg.status_code == 201
    api.client.cookies.clear()

    login = api.login("ana@x.com")
    assert login.status_code == 200
    assert login.json()["user"]["id"] == reg.json()["user"]["id"]
    login_cookie = api.client.cookies.get("refreshToken")

    api.client.cookies.clear()
    rotated = api.client.post(REFRESH, cookies={"refreshToken": login_cookie})
    assert rotated.status_code == 200
    assert api.codec.verify(rotated.json()["accessToken"], TokenKind.ACCESS)["sub"] == reg.json()["user"]["id"]

    api.client.cookies.clear()
    replay = api.client.post(REFRESH, cookies={"refreshToken": login_cookie})
    assert replay.status_code == 403
    assert replay.json() == {"success": False, "message": "Invalid refresh token."}
