"""
client/api_client.py -- Python client for the Quill API.

The client keeps the access token in memory and lets the requests cookie jar
hold the refresh cookie, exactly as a browser would. It implements the
session-expiry contract:

  1. A request that carried an access token comes back 401.
  2. The client calls POST /auth/refresh once.
  3. On success it replays the original request once with the new token.
     On failure it drops the access token and the cookie jar and raises
     SessionExpired.

The refresh call itself is never retried, and a replayed request that fails
again is reported as-is.

Usage:
    client = BlogClient("http://localhost:8000")
    client.login("ana@x.com", "secret1")
    client.request("POST", "/posts", json={"title": "Hello", "content": "..."})
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

logger = logging.getLogger("quill.client")

API_PREFIX = "/api/v1"


class ApiError(Exception):
    """A failure response from the API. status is 0 when the server was unreachable."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class SessionExpired(ApiError):
    """The refresh token was rejected; the user has to log in again."""

    def __init__(self, message: str = "Session expired. Please log in again.") -> None:
        super().__init__(401, message)


class BlogClient:
    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.access_token: Optional[str] = None

    # ------------------------------------------------------------------
    # Session operations
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str, role: Optional[str] = None) -> dict[str, Any]:
        body: dict[str, Any] = {"name": name, "email": email, "password": password}
        if role is not None:
            body["role"] = role
        data = self._parse(self._send("POST", "/auth/register", json=body))
        self.access_token = data["accessToken"]
        return data["user"]

    def login(self, email: str, password: str) -> dict[str, Any]:
        data = self._parse(self._send("POST", "/auth/login", json={"email": email, "password": password}))
        self.access_token = data["accessToken"]
        return data["user"]

    def refresh(self) -> str:
        """Rotate the refresh cookie and store the new access token.

        Raises ApiError if the server rejects the refresh cookie.
        """
        data = self._parse(self._send("POST", "/auth/refresh"))
        self.access_token = data["accessToken"]
        return self.access_token

    def logout(self) -> None:
        """Revoke the session server-side. Local state is cleared even if that fails."""
        try:
            self.request("POST", "/auth/logout")
        finally:
            self.clear()

    def profile(self) -> dict[str, Any]:
        return self.request("GET", "/auth/profile")["user"]

    def clear(self) -> None:
        self.access_token = None
        self.session.cookies.clear()

    # ------------------------------------------------------------------
    # Generic request with refresh-and-replay
    # ------------------------------------------------------------------

    def request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Call an API path (relative to /api/v1) and return the decoded body.

        Raises ApiError for failure responses and SessionExpired when a 401
        could not be recovered by refreshing.
        """
        sent_token = self.access_token is not None
        resp = self._send(method, path, authorized=True, **kwargs)
        if resp.status_code != 401 or not sent_token:
            return self._parse(resp)

        logger.info("Access token rejected on %s %s, refreshing", method, path)
        try:
            self.refresh()
        except ApiError as exc:
            logger.info("Refresh failed (%s), clearing session", exc.status)
            self.clear()
            raise SessionExpired() from exc

        return self._parse(self._send(method, path, authorized=True, **kwargs))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _send(self, method: str, path: str, authorized: bool = False, **kwargs: Any) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        if authorized and self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        url = f"{self.base_url}{API_PREFIX}{path}"
        try:
            return self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise ApiError(0, f"Could not reach the server: {e}") from e

    @staticmethod
    def _parse(resp: requests.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"data": data}
        if resp.status_code >= 400:
            raise ApiError(resp.status_code, data.get("message") or resp.reason or "Request failed")
        return data
