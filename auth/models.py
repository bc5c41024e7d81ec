"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, near-zero logic). Stores and the
session authority do the work.

Layer rule: no imports from api/, blog/, or client/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    reader = "reader"
    author = "author"
    admin = "admin"

    @classmethod
    def for_self_registration(cls, requested: Role | str | None) -> Role:
        """Clamp a role requested at sign-up.

        Readers and authors may pick their own role. Anything else -- admin
        included -- silently becomes reader, so self-registration can never
        escalate privileges.
        """
        if requested in (cls.reader, cls.author):
            return cls(requested)
        return cls.reader


@dataclass
class User:
    """A registered account.

    email is stored lowercase; lookups normalise the same way.

    refresh_token_hash is HMAC-SHA256(refresh secret, token) of the single
    refresh token currently valid for this user, or None when logged out.
    Overwriting it is what rotates (and thereby revokes) the previous token.
    """

    name: str
    email: str
    password_hash: str
    role: Role = Role.reader
    id: str | None = None
    bio: str = ""
    avatar_url: str = ""
    refresh_token_hash: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class Identity:
    """Per-request authenticated principal derived from an access token."""

    id: str
    role: Role
