"""Authentication routes."""
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import settings
from ...core.auth import auth_service
from ...core.security import get_current_user, get_optional_user
from ...database import get_db
from ...models.user import User
from ...schemas.auth import (
    AccessTokenResponse,
    LoginRequest,
    PasswordChangeRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    RefreshTokenRequest,
    RegisterRequest,
    TokenResponse,
    UserProfileResponse,
    UserResponse,
    UserUpdate,
)
from ...schemas.common import SuccessResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])

REFRESH_COOKIE = "refreshToken"


def _refresh_token_from(
    body: Optional[RefreshTokenRequest],
    cookie: Optional[str]
) -> Optional[str]:
    if body is not None and body.refresh_token:
        return body.refresh_token
    return cookie


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    register_request: RegisterRequest,
    actor: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Register a new user."""
    user = await auth_service.register(
        db,
        full_name=register_request.full_name,
        email=register_request.email,
        password=register_request.password,
        role=register_request.role,
        actor=actor,
    )
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login_user(
    login_request: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login user and return tokens."""
    return await auth_service.login(db, login_request.email, login_request.password)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh_token(
    refresh_request: Optional[RefreshTokenRequest] = None,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    db: AsyncSession = Depends(get_db)
):
    """Issue a new access token from a refresh token."""
    return await auth_service.refresh(db, _refresh_token_from(refresh_request, refresh_cookie))


@router.post("/logout", response_model=SuccessResponse)
async def logout_user(
    logout_request: Optional[RefreshTokenRequest] = None,
    refresh_cookie: Optional[str] = Cookie(None, alias=REFRESH_COOKIE),
    db: AsyncSession = Depends(get_db)
):
    """Revoke a refresh token. Always succeeds."""
    await auth_service.logout(db, _refresh_token_from(logout_request, refresh_cookie))
    return SuccessResponse(message="Logged out successfully")


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return UserProfileResponse.model_validate(current_user)


@router.put("/me", response_model=UserProfileResponse)
async def update_current_user(
    user_update: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Update the current user's profile."""
    user = await auth_service.update_profile(
        db,
        current_user,
        full_name=user_update.full_name,
        avatar_url=user_update.avatar_url,
    )
    return UserProfileResponse.model_validate(user)


@router.post("/change-password", response_model=SuccessResponse)
async def change_password(
    password_change: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Change user password; other sessions are signed out."""
    await auth_service.change_password(
        db,
        current_user,
        password_change.current_password,
        password_change.new_password,
    )
    return SuccessResponse(message="Password changed successfully")


@router.post("/forgot-password", response_model=SuccessResponse)
async def forgot_password(
    reset_request: PasswordResetRequest,
    db: AsyncSession = Depends(get_db)
):
    """Start a password reset. The answer does not reveal whether the email exists."""
    token = await auth_service.request_password_reset(db, reset_request.email)
    data = {"resetToken": token} if token and settings.debug else None
    return SuccessResponse(
        message="If the email is registered, password reset instructions have been sent",
        data=data,
    )


@router.post("/reset-password", response_model=SuccessResponse)
async def reset_password(
    reset_confirm: PasswordResetConfirm,
    db: AsyncSession = Depends(get_db)
):
    """Set a new password using a reset token."""
    await auth_service.reset_password(db, reset_confirm.token, reset_confirm.new_password)
    return SuccessResponse(message="Password has been reset")
