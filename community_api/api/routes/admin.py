"""Admin account management and system routes."""
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import settings
from ...core.auth import auth_service
from ...core.exceptions import ValidationError
from ...core.security import Identity, admin_required, get_current_identity
from ...database import get_db
from ...models.user import User, UserRole
from ...schemas.auth import RoleUpdateRequest, UserProfileResponse, UserStatsResponse
from ...schemas.common import HealthResponse, PaginatedResponse, PaginationParams, SuccessResponse

router = APIRouter(prefix="/admin", tags=["Administration"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: AsyncSession = Depends(get_db)
):
    """System health check."""
    services = {}

    try:
        await db.execute(select(1))
        services["database"] = "healthy"
    except Exception:
        services["database"] = "unhealthy"

    overall_status = "healthy" if all(
        state == "healthy" for state in services.values()
    ) else "degraded"

    return HealthResponse(
        status=overall_status,
        version=settings.api.version,
        services=services,
    )


@router.get("/stats", response_model=UserStatsResponse)
async def get_user_stats(
    current_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """User counts per role (admin only)."""
    counts = await auth_service.count_users_by_role(db)
    return UserStatsResponse(total_users=sum(counts.values()), users_by_role=counts)


@router.get("/users", response_model=PaginatedResponse[UserProfileResponse])
async def list_users(
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = Query(None),
    current_user: User = Depends(admin_required),
    db: AsyncSession = Depends(get_db)
):
    """List users (admin only)."""
    pagination = PaginationParams(page=page, size=size)
    users, total = await auth_service.list_users(
        db, offset=pagination.offset, limit=pagination.size, role=role
    )
    return PaginatedResponse[UserProfileResponse].create(
        items=[UserProfileResponse.model_validate(user) for user in users],
        total=total,
        page=pagination.page,
        size=pagination.size,
    )


@router.put("/users/{user_id}/role", response_model=UserProfileResponse)
async def update_user_role(
    user_id: uuid.UUID,
    role_update: RoleUpdateRequest,
    current_user: User = Depends(admin_required),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Change a user's role (admin only)."""
    if user_id == identity.id and role_update.role != UserRole.ADMIN:
        raise ValidationError(
            "Admins cannot remove their own admin role",
            details={"role": "Cannot demote yourself"}
        )
    user = await auth_service.set_role(db, user_id, role_update.role)
    return UserProfileResponse.model_validate(user)


@router.delete("/users/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: uuid.UUID,
    current_user: User = Depends(admin_required),
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db)
):
    """Delete a user and revoke its sessions (admin only)."""
    if user_id == identity.id:
        raise ValidationError("Admins cannot delete themselves", details={"userId": "Cannot delete yourself"})
    await auth_service.delete_user(db, user_id)
    return SuccessResponse(message="User deleted successfully")
