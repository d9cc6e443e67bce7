"""Password hashing utilities.

bcrypt handles salting itself and produces hashes starting with "$2b$".
The work factor comes from settings.bcrypt_rounds (12 by default, about
100ms per hash). Passwords are truncated to bcrypt's 72-byte limit.
"""

import bcrypt

from taskflow.config import settings


def hash_password(password: str) -> str:
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
