"""
auth/session.py -- Session authority: register, login, refresh rotation, logout.

The authority owns the one piece of server-side session state: the refresh
fingerprint on each user record. Every successful register/login/refresh
issues a fresh access+refresh pair and overwrites that fingerprint, so at most
one refresh token per user is ever valid. Logout nulls it.

Access tokens are never stored. They are trusted for their 15 minute lifetime
and simply expire.

The authority is transport-agnostic: it returns IssuedSession values and
raises AppError subclasses. Cookie handling lives in api/routes/v1/auth.py.

Layer rule: no imports from api/, blog/, or client/.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from auth.errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidRefresh,
    MissingToken,
    RefreshExpired,
    RefreshRevoked,
    TokenExpired,
    TokenInvalid,
)
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import TokenCodec, TokenKind

logger = logging.getLogger("quill.auth")


@dataclass(frozen=True)
class IssuedSession:
    """Result of a successful register, login or refresh.

    refresh_token must only ever leave the server inside the refresh cookie.
    """

    user: User
    access_token: str
    refresh_token: str


class SessionAuthority:
    """Orchestrates credential issue and rotation over a UserStore and a TokenCodec."""

    def __init__(self, store: UserStore, codec: TokenCodec) -> None:
        self.store = store
        self.codec = codec

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str, requested_role: Role | str | None = None) -> IssuedSession:
        """Create an account and start its session.

        Raises DuplicateEmail if the email (case-insensitively) is taken.
        An admin role request is silently downgraded to reader.
        """
        email = email.strip().lower()
        if self.store.find_by_email(email) is not None:
            raise DuplicateEmail()

        user = User(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            role=Role.for_self_registration(requested_role),
        )
        try:
            self.store.create(user)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email.
            raise DuplicateEmail() from exc

        logger.info("Registered user %s with role %s", user.id, user.role.value)
        return self._start_session(user)

    def login(self, email: str, password: str) -> IssuedSession:
        """Verify credentials and start a new session.

        Unknown email and wrong password raise the same InvalidCredentials.
        """
        user = self.store.find_by_email(email)
        if not self.store.check_password(user, password):
            logger.info("Login rejected")
            raise InvalidCredentials()
        return self._start_session(user)

    def refresh(self, presented: str | None) -> IssuedSession:
        """Rotate a refresh token into a brand-new access+refresh pair.

        Raises MissingToken, RefreshExpired, InvalidRefresh or RefreshRevoked.
        A token that is correctly signed and unexpired but no longer the one on
        record (rotated out, or logged out) is RefreshRevoked.
        """
        if not presented:
            raise MissingToken()

        try:
            claims = self.codec.verify(presented, TokenKind.REFRESH)
        except TokenExpired as exc:
            raise RefreshExpired() from exc
        except TokenInvalid as exc:
            raise InvalidRefresh() from exc

        user = self.store.find_by_id(claims["sub"])
        if user is None or user.refresh_token_hash is None:
            raise RefreshRevoked()
        if not hmac.compare_digest(user.refresh_token_hash, self.codec.fingerprint(presented)):
            logger.info("Superseded refresh token presented for user %s", user.id)
            raise RefreshRevoked()

        return self._start_session(user)

    def logout(self, user_id: str) -> None:
        """Revoke the user's refresh token. Calling it again is harmless."""
        self.store.clear_refresh_token(user_id)
        logger.info("Logged out user %s", user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _start_session(self, user: User) -> IssuedSession:
        access_token = self.codec.issue({"sub": user.id, "role": Role(user.role).value}, TokenKind.ACCESS)
        refresh_token = self.codec.issue({"sub": user.id}, TokenKind.REFRESH)
        user.refresh_token_hash = self.codec.fingerprint(refresh_token)
        self.store.save(user, fields=("refresh_token_hash",))
        return IssuedSession(user=user, access_token=access_token, refresh_token=refresh_token)
