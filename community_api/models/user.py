"""User model."""
import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..core.passwords import hash_password
from .base import Base


class UserRole(str, enum.Enum):
    """Roles a community member can hold."""

    USER = "user"
    MENTOR = "mentor"
    ADMIN = "admin"


class User(Base):
    """User model for authentication and authorization.

    Passwords are only ever stored as ``hashed_password``. Assigning
    ``password`` hashes immediately; any other update leaves the hash alone.
    """

    __tablename__ = "users"

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            name="user_role",
            native_enum=False,
            length=20,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        default=UserRole.USER,
        nullable=False
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(Text)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Password reset
    reset_token_hash: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    reset_token_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    @property
    def password(self):
        raise AttributeError("password is write-only")

    @password.setter
    def password(self, plaintext: str) -> None:
        self.set_password(plaintext)

    def set_password(self, plaintext: str) -> None:
        """Replace the stored hash with a fresh hash of ``plaintext``."""
        self.hashed_password = hash_password(plaintext)

    def __repr__(self) -> str:
        return f"<User(email={self.email}, role={self.role.value})>"
