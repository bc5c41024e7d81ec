"""
auth/errors.py -- Failure kinds of the token codec, session authority and guard.

Two families live here:

  TokenError (TokenInvalid, TokenExpired) -- raised by the codec. These are
      not HTTP errors; the authority and the guard translate them. Keeping
      expired and invalid apart matters: expiry is routine and drives the
      refresh flow, a bad signature means tampering.

  AppError subclasses -- what the HTTP layer renders. The three refresh
      rejections share one public message so the response cannot be used as
      an oracle for which check failed; the class name still tells the logs.
"""

from __future__ import annotations

from core.errors import AppError, Forbidden

__all__ = [
    "DuplicateEmail",
    "Forbidden",
    "InvalidCredentials",
    "InvalidRefresh",
    "MissingToken",
    "RefreshExpired",
    "RefreshRevoked",
    "TokenError",
    "TokenExpired",
    "TokenInvalid",
    "Unauthorized",
]


class TokenError(Exception):
    """Base class for codec verification failures."""


class TokenInvalid(TokenError):
    """Malformed token, bad signature, or a token of the wrong kind."""


class TokenExpired(TokenError):
    """Signature is valid but the token is past its exp claim."""


class DuplicateEmail(AppError):
    status_code = 400
    message = "User already exists."


class InvalidCredentials(AppError):
    status_code = 401
    message = "Invalid email or password."


class Unauthorized(AppError):
    status_code = 401
    message = "Not authorized."


class MissingToken(AppError):
    status_code = 401
    message = "Refresh token required."


class _RefreshRejected(AppError):
    status_code = 403
    message = "Invalid refresh token."


class InvalidRefresh(_RefreshRejected):
    pass


class RefreshExpired(_RefreshRejected):
    pass


class RefreshRevoked(_RefreshRejected):
    pass
