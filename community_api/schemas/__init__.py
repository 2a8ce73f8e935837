"""Pydantic schemas module."""
from .auth import (
    RegisterRequest,
    UserResponse,
    UserProfileResponse,
    UserUpdate,
    LoginRequest,
    TokenResponse,
    AccessTokenResponse,
    RefreshTokenRequest,
    PasswordChangeRequest,
    PasswordResetRequest,
    PasswordResetConfirm,
    RoleUpdateRequest,
    UserStatsResponse,
)
from .common import (
    PaginatedResponse,
    PaginationParams,
    ErrorResponse,
    SuccessResponse,
    HealthResponse,
)

__all__ = [
    # Auth
    "RegisterRequest",
    "UserResponse",
    "UserProfileResponse",
    "UserUpdate",
    "LoginRequest",
    "TokenResponse",
    "AccessTokenResponse",
    "RefreshTokenRequest",
    "PasswordChangeRequest",
    "PasswordResetRequest",
    "PasswordResetConfirm",
    "RoleUpdateRequest",
    "UserStatsResponse",
    # Common
    "PaginatedResponse",
    "PaginationParams",
    "ErrorResponse",
    "SuccessResponse",
    "HealthResponse",
]
