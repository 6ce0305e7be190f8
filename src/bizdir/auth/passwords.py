"""
bizdir.auth.passwords

bcrypt password hashing.
"""

from __future__ import annotations

import bcrypt

MIN_PASSWORD_LENGTH = 6
_ROUNDS = 10


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash (e.g. a placeholder) never matches.
        return False
