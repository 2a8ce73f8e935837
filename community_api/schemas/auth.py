"""Authentication schemas."""
import uuid
from datetime import datetime
from typing import Annotated, Dict, Optional

from pydantic import AfterValidator, EmailStr, Field, StringConstraints, field_validator

from ..core.passwords import MAX_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH, password_problem
from ..models.user import UserRole
from .common import BaseSchema

FullName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]


def _check_password(value: str) -> str:
    problem = password_problem(value)
    if problem:
        raise ValueError(problem)
    return value


Password = Annotated[
    str,
    StringConstraints(min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_LENGTH),
    AfterValidator(_check_password),
]


class EmailSchema(BaseSchema):
    """Schemas carrying an email, normalized to lower case."""

    email: EmailStr = Field(..., description="User email address")

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class RegisterRequest(EmailSchema):
    """User registration schema."""

    full_name: FullName = Field(..., description="User full name")
    password: Password = Field(..., description="User password")
    role: Optional[UserRole] = Field(None, description="Requested role, admin only beyond 'user'")


class UserUpdate(BaseSchema):
    """Profile update schema."""

    full_name: Optional[FullName] = Field(None, description="User full name")
    avatar_url: Optional[str] = Field(None, max_length=2048, description="Avatar URL")


class UserResponse(BaseSchema):
    """Public projection of a user."""

    id: uuid.UUID = Field(..., description="User ID")
    full_name: str = Field(..., description="User full name")
    email: str = Field(..., description="User email address")
    role: UserRole = Field(..., description="User role")


class UserProfileResponse(UserResponse):
    """User profile as seen by the user or an admin."""

    avatar_url: Optional[str] = Field(None, description="Avatar URL")
    is_email_verified: bool = Field(..., description="Email verification status")
    last_login: Optional[datetime] = Field(None, description="Last login time")
    created_at: datetime = Field(..., description="Account creation time")
    updated_at: datetime = Field(..., description="Account last update time")


class LoginRequest(BaseSchema):
    """Login request schema."""

    email: str = Field(..., min_length=1, description="User email")
    password: str = Field(..., min_length=1, description="User password")


class TokenResponse(BaseSchema):
    """Tokens issued on login."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    user: UserResponse = Field(..., description="User information")


class AccessTokenResponse(BaseSchema):
    """Access token issued on refresh."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class RefreshTokenRequest(BaseSchema):
    """Refresh token carried in the body; may instead come from a cookie."""

    refresh_token: Optional[str] = Field(None, description="Refresh token")


class PasswordChangeRequest(BaseSchema):
    """Password change request schema."""

    current_password: str = Field(..., min_length=1, description="Current password")
    new_password: Password = Field(..., description="New password")


class PasswordResetRequest(EmailSchema):
    """Password reset request schema."""


class PasswordResetConfirm(BaseSchema):
    """Password reset confirmation schema."""

    token: str = Field(..., min_length=1, description="Reset token")
    new_password: Password = Field(..., description="New password")


class RoleUpdateRequest(BaseSchema):
    """Role change requested by an admin."""

    role: UserRole = Field(..., description="New role")


class UserStatsResponse(BaseSchema):
    """User counts for the admin dashboard."""

    total_users: int = Field(..., description="Total number of users")
    users_by_role: Dict[str, int] = Field(default_factory=dict, description="Users per role")
