"""Authentication and account management core functionality."""
import asyncio
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..models.refresh_token import RefreshToken
from ..models.user import User, UserRole
from ..schemas.auth import AccessTokenResponse, TokenResponse, UserResponse
from . import tokens
from .exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidTokenError,
    NotFoundError,
    ValidationError,
)
from .logging import AccountLogger, SecurityLogger
from .passwords import password_problem, verify_password

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH_TOKEN = "Invalid refresh token"
DUPLICATE_EMAIL = "User with this email already exists"


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """Authentication service.

    The only place where plaintext passwords are hashed or compared, and
    the owner of each user's set of outstanding refresh tokens.
    """

    async def set_password(self, user: User, password: str, field: str = "password") -> None:
        """Validate and hash a new password off the event loop."""
        problem = password_problem(password)
        if problem:
            raise ValidationError("Validation failed", details={field: problem})
        await asyncio.to_thread(user.set_password, password)

    async def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return await asyncio.to_thread(verify_password, plain_password, hashed_password)

    # Lookups

    async def get_user_by_id(
        self,
        db: AsyncSession,
        user_id: uuid.UUID
    ) -> Optional[User]:
        """Get user by ID."""
        return await db.get(User, user_id)

    async def get_user_by_email(
        self,
        db: AsyncSession,
        email: str
    ) -> Optional[User]:
        """Get user by email, ignoring case."""
        stmt = select(User).where(User.email == _normalize_email(email))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    # Registration and sessions

    async def register(
        self,
        db: AsyncSession,
        full_name: str,
        email: str,
        password: str,
        role: Optional[UserRole] = None,
        actor: Optional[User] = None
    ) -> User:
        """Create a new user.

        Any role above ``user`` must be granted by an admin ``actor``.
        """
        role = role or UserRole.USER
        if role != UserRole.USER and (actor is None or actor.role != UserRole.ADMIN):
            raise AuthorizationError(f"Only admins can register users with role '{role.value}'")

        email = _normalize_email(email)
        full_name = full_name.strip()
        errors = {}
        if not full_name:
            errors["fullName"] = "Full name is required"
        problem = password_problem(password)
        if problem:
            errors["password"] = problem
        if errors:
            raise ValidationError("Validation failed", details=errors)

        if await self.get_user_by_email(db, email):
            raise ValidationError(DUPLICATE_EMAIL, details={"email": DUPLICATE_EMAIL})

        user = User(
            full_name=full_name,
            email=email,
            role=role,
        )
        await self.set_password(user, password)
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as exc:
            # Lost a race against a concurrent registration
            await db.rollback()
            raise ValidationError(DUPLICATE_EMAIL, details={"email": DUPLICATE_EMAIL}) from exc

        AccountLogger.log_user_registered(
            user_id=str(user.id),
            role=user.role.value,
            created_by=str(actor.id) if actor else None
        )
        return user

    async def login(
        self,
        db: AsyncSession,
        email: str,
        password: str
    ) -> TokenResponse:
        """Check credentials and open a new session."""
        user = await self.get_user_by_email(db, email)

        if user is None:
            SecurityLogger.log_login_attempt(email=email, success=False, failure_reason="unknown_email")
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not await self.verify_password(password, user.hashed_password):
            SecurityLogger.log_login_attempt(
                email=email, success=False, user_id=str(user.id), failure_reason="bad_password"
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        access_token = tokens.issue_access_token(user.id)
        refresh_token = await self.add_refresh_token(db, user.id)
        user.last_login = datetime.now(timezone.utc)
        await db.commit()

        SecurityLogger.log_login_attempt(email=email, success=True, user_id=str(user.id))
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=int(tokens.access_token_lifetime().total_seconds()),
            user=UserResponse.model_validate(user),
        )

    async def refresh(
        self,
        db: AsyncSession,
        refresh_token: Optional[str]
    ) -> AccessTokenResponse:
        """Issue a new access token for a live refresh token.

        The refresh token itself is not rotated; it stays valid until it
        expires or is revoked.
        """
        user = await self._user_for_refresh_token(db, refresh_token)
        return AccessTokenResponse(
            access_token=tokens.issue_access_token(user.id),
            token_type="bearer",
            expires_in=int(tokens.access_token_lifetime().total_seconds()),
        )

    async def logout(self, db: AsyncSession, refresh_token: Optional[str]) -> bool:
        """Revoke a refresh token. Returns whether anything was revoked."""
        if not refresh_token:
            SecurityLogger.log_logout(revoked=False)
            return False

        token_hash = tokens.hash_token(refresh_token)
        user_id = await db.scalar(
            select(RefreshToken.user_id).where(RefreshToken.token_hash == token_hash)
        )
        await db.execute(delete(RefreshToken).where(RefreshToken.token_hash == token_hash))
        await db.commit()

        SecurityLogger.log_logout(user_id=str(user_id) if user_id else None, revoked=user_id is not None)
        return user_id is not None

    # Outstanding refresh tokens

    async def add_refresh_token(self, db: AsyncSession, user_id: uuid.UUID) -> str:
        """Mint a refresh token and record it as outstanding.

        The user's expired rows are dropped on the way.
        """
        now = datetime.now(timezone.utc)
        await db.execute(
            delete(RefreshToken).where(
                RefreshToken.user_id == user_id,
                RefreshToken.expires_at < now,
            ).execution_options(synchronize_session=False)
        )

        lifetime = tokens.refresh_token_lifetime()
        token = tokens.issue_refresh_token(user_id, lifetime)
        db.add(RefreshToken(
            user_id=user_id,
            token_hash=tokens.hash_token(token),
            expires_at=now + lifetime,
        ))
        await db.flush()
        return token

    async def is_refresh_token_outstanding(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        refresh_token: str
    ) -> bool:
        stmt = select(RefreshToken.id).where(
            RefreshToken.user_id == user_id,
            RefreshToken.token_hash == tokens.hash_token(refresh_token),
        )
        result = await db.execute(stmt)
        return result.first() is not None

    async def revoke_all_refresh_tokens(self, db: AsyncSession, user_id: uuid.UUID) -> int:
        """Drop every outstanding refresh token of a user."""
        result = await db.execute(
            delete(RefreshToken).where(RefreshToken.user_id == user_id)
        )
        return result.rowcount or 0

    async def _user_for_refresh_token(
        self,
        db: AsyncSession,
        refresh_token: Optional[str]
    ) -> User:
        if not refresh_token:
            SecurityLogger.log_token_rejected("refresh", reason="missing")
            raise AuthenticationError(INVALID_REFRESH_TOKEN)

        try:
            payload = tokens.verify_refresh_token(refresh_token)
            user_id = tokens.subject_id(payload)
        except InvalidTokenError as exc:
            SecurityLogger.log_token_rejected("refresh", reason=exc.reason)
            raise AuthenticationError(INVALID_REFRESH_TOKEN) from exc

        if not await self.is_refresh_token_outstanding(db, user_id, refresh_token):
            SecurityLogger.log_token_rejected("refresh", reason="revoked", user_id=str(user_id))
            raise AuthenticationError(INVALID_REFRESH_TOKEN)

        user = await self.get_user_by_id(db, user_id)
        if user is None:
            SecurityLogger.log_token_rejected("refresh", reason="unknown_user", user_id=str(user_id))
            raise AuthenticationError(INVALID_REFRESH_TOKEN)
        return user

    # Profile and passwords

    async def update_profile(
        self,
        db: AsyncSession,
        user: User,
        full_name: Optional[str] = None,
        avatar_url: Optional[str] = None
    ) -> User:
        """Update profile fields; the password hash is never touched here."""
        if full_name is not None:
            user.full_name = full_name
        if avatar_url is not None:
            user.avatar_url = avatar_url or None
        await db.commit()
        return user

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        current_password: str,
        new_password: str
    ) -> None:
        """Change password and sign the user out everywhere."""
        if not await self.verify_password(current_password, user.hashed_password):
            raise AuthenticationError("Current password is incorrect")

        await self.set_password(user, new_password, field="newPassword")
        revoked = await self.revoke_all_refresh_tokens(db, user.id)
        await db.commit()

        AccountLogger.log_password_changed(str(user.id), sessions_revoked=revoked)

    async def request_password_reset(self, db: AsyncSession, email: str) -> Optional[str]:
        """Store a reset token for ``email`` and return it, or None if unknown."""
        user = await self.get_user_by_email(db, email)
        if user is None:
            return None

        token = secrets.token_urlsafe(32)
        user.reset_token_hash = tokens.hash_token(token)
        user.reset_token_expires_at = datetime.now(timezone.utc) + timedelta(
            minutes=settings.auth.password_reset_expire_minutes
        )
        await db.commit()

        AccountLogger.log_password_reset_requested(str(user.id))
        return token

    async def reset_password(self, db: AsyncSession, token: str, new_password: str) -> User:
        """Consume a reset token and set a new password."""
        stmt = select(User).where(User.reset_token_hash == tokens.hash_token(token))
        user = (await db.execute(stmt)).scalar_one_or_none()

        if (
            user is None
            or user.reset_token_expires_at is None
            or _as_utc(user.reset_token_expires_at) <= datetime.now(timezone.utc)
        ):
            raise ValidationError(
                "Invalid or expired reset token",
                details={"token": "Invalid or expired reset token"}
            )

        await self.set_password(user, new_password, field="newPassword")
        user.reset_token_hash = None
        user.reset_token_expires_at = None
        revoked = await self.revoke_all_refresh_tokens(db, user.id)
        await db.commit()

        AccountLogger.log_password_changed(str(user.id), via_reset=True, sessions_revoked=revoked)
        return user

    # Administration

    async def list_users(
        self,
        db: AsyncSession,
        offset: int = 0,
        limit: int = 20,
        role: Optional[UserRole] = None
    ) -> Tuple[List[User], int]:
        """Page through users, newest first."""
        stmt = select(User)
        count_stmt = select(func.count(User.id))
        if role is not None:
            stmt = stmt.where(User.role == role)
            count_stmt = count_stmt.where(User.role == role)

        total = await db.scalar(count_stmt) or 0
        result = await db.execute(
            stmt.order_by(User.created_at.desc()).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def count_users_by_role(self, db: AsyncSession) -> Dict[str, int]:
        result = await db.execute(
            select(User.role, func.count(User.id)).group_by(User.role)
        )
        counts = {role.value: 0 for role in UserRole}
        for role, count in result.all():
            counts[UserRole(role).value] = count
        return counts

    async def set_role(self, db: AsyncSession, user_id: uuid.UUID, role: UserRole) -> User:
        user = await self.get_user_by_id(db, user_id)
        if user is None:
            raise NotFoundError("User not found")

        old_role = user.role
        user.role = role
        await db.commit()

        AccountLogger.log_role_changed(str(user.id), old_role.value, role.value)
        return user

    async def delete_user(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        """Remove a user together with its refresh tokens."""
        user = await self.get_user_by_id(db, user_id)
        if user is None:
            raise NotFoundError("User not found")

        await self.revoke_all_refresh_tokens(db, user.id)
        await db.delete(user)
        await db.commit()

        AccountLogger.log_user_deleted(str(user_id))


# Global auth service instance
auth_service = AuthService()
