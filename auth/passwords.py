"""
auth/passwords.py -- Password hashing (bcrypt, direct usage, no passlib wrapper).

Inputs longer than 72 bytes are rejected by bcrypt; the API layer caps
password length below that.

DUMMY_HASH exists for timing equalization: when a login names an email that
does not exist, the store still runs one bcrypt comparison against it so the
response time does not reveal whether the account exists.
"""

from __future__ import annotations

import bcrypt


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password."""
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash or an over-long input: never a match.
        return False


# Computed once at import so the first failed login costs the same as later ones.
DUMMY_HASH: str = hash_password("quill_timing_dummy")
