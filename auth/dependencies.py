"""
auth/dependencies.py -- Access guard: FastAPI Depends() helpers for authentication.

Only one auth method exists: an access token in the header
    Authorization: Bearer <token>
The refresh cookie is never accepted here; it is only good for /auth/refresh.

try_authenticate() is the soft variant (returns None on failure).
authenticate() wraps it and raises Unauthorized if unauthenticated.
authorize(*roles) builds a dependency that additionally raises Forbidden when
the caller's role is not allowed.

The guard trusts the signed claims and never re-reads the user record. A role
change therefore reaches an already-issued access token only when it expires
(at most 15 minutes later) and the client refreshes.

Layer rule: no imports from api/, blog/, or client/.
  auth/dependencies.py may import from fastapi (for Depends/Request) because
  this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request

from auth.errors import Forbidden, TokenError, Unauthorized
from auth.models import Identity, Role
from auth.tokens import TokenCodec, TokenKind

_BEARER_PREFIX = "Bearer "


def try_authenticate(request: Request) -> Identity | None:
    """Return the Identity carried by the request's access token, or None.

    Never raises. Expired, forged, malformed and missing tokens all look the
    same from here: None.
    """
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith(_BEARER_PREFIX):
        return None
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    if not token:
        return None

    codec: TokenCodec = request.app.state.codec
    try:
        claims = codec.verify(token, TokenKind.ACCESS)
        identity = Identity(id=str(claims["sub"]), role=Role(claims["role"]))
    except (TokenError, KeyError, ValueError):
        return None

    request.state.identity = identity
    return identity


def authenticate(request: Request) -> Identity:
    """Require a valid access token. Raises Unauthorized otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(identity: Identity = Depends(authenticate)): ...
    """
    identity = try_authenticate(request)
    if identity is None:
        raise Unauthorized()
    return identity


def authorize(*roles: Role) -> Callable[..., Identity]:
    """Build a dependency admitting only the given roles.

    With no roles, any authenticated caller is admitted.

        @router.post("/posts")
        async def create(identity: Identity = Depends(authorize(Role.author, Role.admin))): ...
    """
    allowed = frozenset(roles)

    def _check_role(identity: Identity = Depends(authenticate)) -> Identity:
        if allowed and identity.role not in allowed:
            raise Forbidden()
        return identity

    return _check_role
