"""
auth/tokens.py -- Token codec: signing and verification of bearer tokens.

Security design decisions:
  JWT: python-jose with HS256. Two token kinds, each with its own secret:
       access tokens (15 minutes) travel in the Authorization header, refresh
       tokens (7 days) travel only in an HttpOnly cookie. The "type" claim is
       checked on verify as well, so a refresh token can never pass as an
       access token or vice versa.

  jti: every token gets 128 random bits in its jti claim. Two tokens issued
       for the same user within the same second are therefore still distinct,
       which rotation depends on.

  Failure modes: verify() raises TokenExpired for a correctly signed token
       past its exp, and TokenInvalid for everything else. python-jose checks
       the signature before the claims, so an expired token with a forged
       signature is reported as invalid, not expired.

  Refresh fingerprint: the store keeps HMAC-SHA256(refresh secret, token)
       instead of the token itself. Possession of the database alone is not
       enough to replay a session.

Layer rule: no imports from api/, blog/, or client/. Import from core/ is allowed.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import TokenExpired, TokenInvalid
from core.config import get_settings

_ALGORITHM = "HS256"


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenCodec:
    """Issue and verify signed tokens of both kinds.

    Usage:
        codec = TokenCodec(access_secret, refresh_secret)
        token = codec.issue({"sub": user_id, "role": "author"}, TokenKind.ACCESS)
        claims = codec.verify(token, TokenKind.ACCESS)
    """

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        if not access_secret or not refresh_secret:
            raise ValueError("TokenCodec requires both an access and a refresh secret.")
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self._ttls = {TokenKind.ACCESS: access_ttl, TokenKind.REFRESH: refresh_ttl}

    def ttl(self, kind: TokenKind) -> timedelta:
        return self._ttls[kind]

    def issue(self, claims: dict[str, Any], kind: TokenKind) -> str:
        """Encode a signed token carrying claims plus type, jti, iat and exp."""
        now = datetime.now(timezone.utc)
        payload = {
            **claims,
            "type": kind.value,
            "jti": secrets.token_hex(16),
            "iat": now,
            "exp": now + self._ttls[kind],
        }
        return jwt.encode(payload, self._secrets[kind], algorithm=_ALGORITHM)

    def verify(self, token: str, kind: TokenKind) -> dict[str, Any]:
        """Decode and verify a token of the given kind.

        Raises TokenExpired or TokenInvalid. Callers must handle both: they
        mean different things to the refresh flow.
        """
        try:
            claims = jwt.decode(token, self._secrets[kind], algorithms=[_ALGORITHM])
        except ExpiredSignatureError as exc:
            raise TokenExpired(str(exc)) from exc
        except JWTError as exc:
            raise TokenInvalid(str(exc)) from exc
        if claims.get("type") != kind.value or not claims.get("sub"):
            raise TokenInvalid(f"not a {kind.value} token")
        return claims

    def fingerprint(self, refresh_token: str) -> str:
        """Return the HMAC-SHA256 hex digest stored in place of a refresh token."""
        return hmac.new(
            self._secrets[TokenKind.REFRESH].encode(),
            refresh_token.encode(),
            hashlib.sha256,
        ).hexdigest()


@lru_cache
def get_codec() -> TokenCodec:
    """Return the codec configured from Settings (process-wide, immutable)."""
    settings = get_settings()
    return TokenCodec(
        settings.access_token_secret,
        settings.refresh_token_secret,
        access_ttl=timedelta(seconds=settings.access_token_expire_seconds),
        refresh_ttl=timedelta(seconds=settings.refresh_token_expire_seconds),
    )
