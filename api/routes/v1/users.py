"""
api/routes/v1/users.py -- User directory and profile endpoints.

Routes:
  GET /api/v1/users/authors         -- authors and admins, by name (public)
  PUT /api/v1/users/profile         -- edit own name, bio, avatar (requires auth)
  PUT /api/v1/users/{user_id}/role  -- change a user's role (admin only)
  GET /api/v1/users/{user_id}       -- public profile, no email (public)

Fixed paths are registered before /users/{user_id}.

A role change is written to the store immediately but reaches the user's
requests only once their current access token is replaced at refresh.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from api.limiter import default_limit
from api.models import (
    AuthorListResponse,
    AuthorSummary,
    ProfileUpdate,
    PublicProfile,
    PublicProfileResponse,
    RoleUpdate,
    UserProfile,
    UserProfileResponse,
)
from auth.dependencies import authenticate, authorize
from auth.models import Identity, Role
from auth.store import UserStore
from core.errors import NotFound

logger = logging.getLogger("quill.api")

router = APIRouter()


@router.get("/users/authors", response_model=AuthorListResponse)
@default_limit
def list_authors(request: Request) -> AuthorListResponse:
    user_store: UserStore = request.app.state.user_store
    authors = user_store.list_by_roles({Role.author, Role.admin})
    return AuthorListResponse(count=len(authors), data=[AuthorSummary.from_user(u) for u in authors])


@router.put("/users/profile", response_model=UserProfileResponse)
@default_limit
def update_profile(
    request: Request,
    body: ProfileUpdate,
    identity: Identity = Depends(authenticate),
) -> UserProfileResponse:
    """Update the caller's own name, bio and avatar. Omitted fields stay as they are."""
    user_store: UserStore = request.app.state.user_store
    user = user_store.find_by_id(identity.id)
    if user is None:
        raise NotFound("User not found.")

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    for field_name, value in changes.items():
        setattr(user, field_name, value)
    if changes:
        user_store.save(user, fields=tuple(changes))
    return UserProfileResponse(data=UserProfile.from_user(user))


@router.put("/users/{user_id}/role", response_model=UserProfileResponse)
@default_limit
def set_role(
    request: Request,
    user_id: str,
    body: RoleUpdate,
    identity: Identity = Depends(authorize(Role.admin)),
) -> UserProfileResponse:
    user_store: UserStore = request.app.state.user_store
    user = user_store.find_by_id(user_id)
    if user is None:
        raise NotFound("User not found.")
    user.role = body.role
    user_store.save(user, fields=("role",))
    logger.info("Admin %s set role of %s to %s", identity.id, user.id, body.role.value)
    return UserProfileResponse(data=UserProfile.from_user(user))


@router.get("/users/{user_id}", response_model=PublicProfileResponse)
@default_limit
def get_user(request: Request, user_id: str) -> PublicProfileResponse:
    user_store: UserStore = request.app.state.user_store
    user = user_store.find_by_id(user_id)
    if user is None:
        raise NotFound("User not found.")
    return PublicProfileResponse(data=PublicProfile.from_user(user))
