"""Password hashing and verification."""
from typing import Optional

import bcrypt

from ..config import settings

MIN_PASSWORD_LENGTH = 6
# bcrypt refuses input longer than 72 bytes
MAX_PASSWORD_LENGTH = 72


def password_problem(password: str) -> Optional[str]:
    """Return why ``password`` can't be used, or None if it can."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if len(password.encode("utf-8")) > MAX_PASSWORD_LENGTH:
        return f"Password must be at most {MAX_PASSWORD_LENGTH} bytes"
    return None


def hash_password(password: str) -> str:
    """Hash password using bcrypt with a fresh salt."""
    salt = bcrypt.gensalt(rounds=settings.auth.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8")
        )
    except ValueError:
        # Malformed hash in storage or oversized input
        return False
