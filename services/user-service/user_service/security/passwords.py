"""Password hashing helpers backed by bcrypt."""

from __future__ import annotations

import bcrypt

from ..config import get_settings


def hash_password(password: str, *, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash for ``password`` using a fresh random salt."""
    cost = rounds if rounds is not None else get_settings().bcrypt_rounds
    salt = bcrypt.gensalt(rounds=cost)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")
