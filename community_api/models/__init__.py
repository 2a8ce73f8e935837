"""Database models module."""
from .base import Base
from .user import User, UserRole
from .refresh_token import RefreshToken

__all__ = [
    "Base",
    "User",
    "UserRole",
    "RefreshToken",
]
