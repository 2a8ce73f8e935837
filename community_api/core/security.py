"""Request authentication and role-based authorization dependencies.

Per request: no ``Authorization`` header or no bearer token gives 401
``NOT_AUTHENTICATED``; a token that fails verification, or whose user is
gone, gives 401 ``INVALID_TOKEN``; a valid identity whose role is not
allowed gives 403.
"""
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User, UserRole
from . import tokens
from .auth import auth_service
from .exceptions import (
    AuthorizationError,
    InvalidTokenAuthError,
    InvalidTokenError,
    NotAuthenticatedError,
)
from .logging import SecurityLogger

# Security scheme; missing or malformed headers are handled below
security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    """Who is making the request, as seen by protected routes."""

    id: uuid.UUID
    role: UserRole


def _bearer_token(request: Request, credentials: Optional[HTTPAuthorizationCredentials]) -> str:
    if credentials is not None and credentials.credentials:
        return credentials.credentials

    header = request.headers.get("Authorization")
    reason = "missing_header" if not header else "missing_bearer_token"
    SecurityLogger.log_unauthorized_access(
        path=request.url.path, method=request.method, reason=reason
    )
    raise NotAuthenticatedError()


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get current authenticated user and attach its identity to the request."""
    token = _bearer_token(request, credentials)

    try:
        payload = tokens.verify_access_token(token)
        user_id = tokens.subject_id(payload)
    except InvalidTokenError as exc:
        SecurityLogger.log_token_rejected("access", reason=exc.reason)
        raise InvalidTokenAuthError() from exc

    # Role comes from the store so role changes apply to live tokens
    user = await auth_service.get_user_by_id(db, user_id)
    if user is None:
        SecurityLogger.log_token_rejected("access", reason="unknown_user", user_id=str(user_id))
        raise InvalidTokenAuthError()

    request.state.user = user
    request.state.identity = Identity(id=user.id, role=user.role)
    return user


async def get_current_identity(
    request: Request,
    current_user: User = Depends(get_current_user)
) -> Identity:
    """Identity attached by get_current_user."""
    return request.state.identity


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """Get current user if a valid bearer token was sent, otherwise None."""
    if credentials is None:
        return None

    try:
        return await get_current_user(request, credentials, db)
    except InvalidTokenAuthError:
        return None


class RoleChecker:
    """Role gate allowing only the given roles through."""

    def __init__(self, allowed_roles: Iterable[UserRole]):
        self.allowed_roles = frozenset(UserRole(role) for role in allowed_roles)

    async def __call__(
        self,
        request: Request,
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role not in self.allowed_roles:
            SecurityLogger.log_unauthorized_access(
                path=request.url.path,
                method=request.method,
                user_id=str(current_user.id),
                reason="insufficient_role"
            )
            raise AuthorizationError(
                "Access forbidden",
                details={"requiredRoles": sorted(role.value for role in self.allowed_roles)}
            )
        return current_user


def require_roles(*roles: UserRole) -> RoleChecker:
    """Dependency requiring one of ``roles``."""
    return RoleChecker(roles)


def require_admin() -> RoleChecker:
    """Dependency to require admin role."""
    return require_roles(UserRole.ADMIN)


# Common role checkers
admin_required = require_admin()
