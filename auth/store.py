"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper (same as blog/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and session
code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Emails are lowercased on the way in and on lookup, and the email column is
  UNIQUE, so "Ana@X.com" and "ana@x.com" are one account. create() lets the
  IntegrityError escape; the session authority maps it to DuplicateEmail.

  Each write is a single-row statement committed on its own connection. That
  is the whole atomicity story for refresh rotation: two concurrent rotations
  race on one UPDATE and the last one wins.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, MetaData, String, Table, Text, text
from sqlalchemy.engine import Engine

from auth.models import Role, User
from auth.passwords import DUMMY_HASH, verify_password
from core.config import get_settings
from core.db import make_engine

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_users = Table(
    "users",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(50), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(10), nullable=False, server_default=Role.reader.value),
    Column("bio", String(250), nullable=False, server_default=""),
    Column("avatar_url", Text, nullable=False, server_default=""),
    Column("refresh_token_hash", String(64)),  # NULL = logged out
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore()
        user = store.create(User(name="Ana", email="ana@x.com", password_hash=hash_password("secret1")))
        same = store.find_by_email("ANA@x.com")
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        self.engine: Engine = make_engine(db_url or get_settings().database_url)
        metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by email, case-insensitively. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email.strip().lower())).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: str) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_many(self, user_ids: set[str]) -> dict[str, User]:
        """Bulk lookup used to attach author summaries to posts and comments."""
        if not user_ids:
            return {}
        with self.engine.connect() as conn:
            rows = conn.execute(_users.select().where(_users.c.id.in_(user_ids))).fetchall()
        return {row.id: _row_to_user(row) for row in rows}

    def list_by_roles(self, roles: set[Role]) -> list[User]:
        """Return users holding any of the given roles, ordered by name."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _users.select().where(_users.c.role.in_([r.value for r in roles])).order_by(_users.c.name)
            ).fetchall()
        return [_row_to_user(r) for r in rows]

    def check_password(self, user: User | None, plain: str) -> bool:
        """Compare a plaintext password against the user's stored hash.

        Passing user=None still runs bcrypt against a dummy hash and returns
        False, so "no such email" costs the same as "wrong password".
        """
        if user is None:
            verify_password(plain, DUMMY_HASH)
            return False
        return verify_password(plain, user.password_hash)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user: User) -> User:
        """Insert a new user and return it with id and timestamps filled in.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        now = _now_iso()
        user.id = user.id or uuid.uuid4().hex
        user.email = user.email.strip().lower()
        user.created_at = user.updated_at = now
        with self.engine.connect() as conn:
            conn.execute(
                _users.insert().values(
                    id=user.id,
                    name=user.name,
                    email=user.email,
                    password_hash=user.password_hash,
                    role=Role(user.role).value,
                    bio=user.bio,
                    avatar_url=user.avatar_url,
                    refresh_token_hash=user.refresh_token_hash,
                    created_at=now,
                    updated_at=now,
                )
            )
            conn.commit()
        return user

    def save(self, user: User, fields: tuple[str, ...] | None = None) -> bool:
        """Write the user's mutable fields back in one UPDATE.

        fields narrows the write to the named attributes, so a session
        rotation does not clobber a concurrent profile or role change.
        Returns True if a row was updated, False if the user no longer exists.
        """
        values = {
            "name": user.name,
            "email": user.email.strip().lower(),
            "password_hash": user.password_hash,
            "role": Role(user.role).value,
            "bio": user.bio,
            "avatar_url": user.avatar_url,
            "refresh_token_hash": user.refresh_token_hash,
        }
        if fields is not None:
            unknown = set(fields) - values.keys()
            if unknown:
                raise ValueError(f"Unknown user fields: {unknown!r}")
            values = {k: values[k] for k in fields}
        user.updated_at = values["updated_at"] = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user.id).values(**values))
            conn.commit()
        return result.rowcount > 0

    def clear_refresh_token(self, user_id: str) -> bool:
        """Null out the stored refresh fingerprint. Idempotent.

        Returns True if the user exists (whether or not a token was stored).
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.update().where(_users.c.id == user_id).values(refresh_token_hash=None, updated_at=_now_iso())
            )
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        password_hash=row.password_hash,
        role=Role(row.role),
        bio=row.bio or "",
        avatar_url=row.avatar_url or "",
        refresh_token_hash=row.refresh_token_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
