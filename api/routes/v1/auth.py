"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/auth/register  -- create account; 201, access token + refresh cookie
  POST /api/v1/auth/login     -- password login; access token + refresh cookie
  POST /api/v1/auth/refresh   -- rotate the refresh cookie into a new pair
  POST /api/v1/auth/logout    -- revoke the refresh token; clears the cookie
  GET  /api/v1/auth/profile   -- current user (requires access token)

Security:
  The refresh token only ever leaves the server in the refreshToken cookie:
  HttpOnly, SameSite=strict, scoped to /api/v1/auth so no other route ever
  receives it. The access token is returned in the body only.
  Register and login are rate-limited per IP on top of the default limit.
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import default_limit, login_limit
from api.models import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    RefreshResponse,
    RegisterRequest,
    UserProfile,
    UserSummary,
)
from auth.dependencies import authenticate
from auth.models import Identity
from auth.session import IssuedSession, SessionAuthority
from auth.store import UserStore
from core.config import get_settings
from core.errors import NotFound

REFRESH_COOKIE = "refreshToken"
REFRESH_COOKIE_PATH = "/api/v1/auth"

_settings = get_settings()

# Auth policy:
# - POST /auth/register: public, rate limited
# - POST /auth/login:    public, rate limited
# - POST /auth/refresh:  refresh cookie only
# - POST /auth/logout:   access token (authenticate)
# - GET  /auth/profile:  access token (authenticate)
router = APIRouter()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=refresh_token,
        max_age=_settings.refresh_token_expire_seconds,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=bool(_settings.secure_cookies),
        samesite="strict",
    )


def clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=REFRESH_COOKIE,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=bool(_settings.secure_cookies),
        samesite="strict",
    )


def _issue(response: Response, session: IssuedSession) -> None:
    set_refresh_cookie(response, session.refresh_token)
    response.headers["Cache-Control"] = "no-store"


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
@login_limit
def register(request: Request, response: Response, body: RegisterRequest) -> AuthResponse:
    """Create an account and start its session.

    A requested "admin" role is downgraded to "reader"; admins are made with
    the create-admin CLI command.
    """
    authority: SessionAuthority = request.app.state.authority
    session = authority.register(body.name, body.email, body.password, body.role)
    _issue(response, session)
    return AuthResponse(access_token=session.access_token, user=UserSummary.from_user(session.user))


@router.post("/auth/login", response_model=AuthResponse)
@login_limit
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password.

    Wrong email and wrong password produce the same 401 and take the same time.
    """
    authority: SessionAuthority = request.app.state.authority
    session = authority.login(body.email, body.password)
    _issue(response, session)
    return AuthResponse(access_token=session.access_token, user=UserSummary.from_user(session.user))


@router.post("/auth/refresh", response_model=RefreshResponse)
@default_limit
def refresh(request: Request, response: Response) -> RefreshResponse:
    """Exchange the refresh cookie for a new access token and a rotated cookie.

    The presented token stops working the moment this returns.
    """
    authority: SessionAuthority = request.app.state.authority
    session = authority.refresh(request.cookies.get(REFRESH_COOKIE))
    _issue(response, session)
    return RefreshResponse(access_token=session.access_token)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
@default_limit
def logout(
    request: Request,
    response: Response,
    identity: Identity = Depends(authenticate),
) -> MessageResponse:
    """Revoke the caller's refresh token and clear the cookie.

    The access token stays valid until it expires; clients drop it locally.
    """
    authority: SessionAuthority = request.app.state.authority
    authority.logout(identity.id)
    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out successfully.")


@router.get("/auth/profile", response_model=ProfileResponse)
@default_limit
def profile(request: Request, identity: Identity = Depends(authenticate)) -> ProfileResponse:
    """Return the current user's full profile, read fresh from the store."""
    user_store: UserStore = request.app.state.user_store
    user = user_store.find_by_id(identity.id)
    if user is None:
        raise NotFound("User not found.")
    return ProfileResponse(user=UserProfile.from_user(user))
