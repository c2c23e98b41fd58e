"""
Profile & User Management API Endpoints.

- GET /profile            the authenticated caller
- GET /users              list users (admin)
- PUT /users/{id}/role    change a user's role (admin)

Access is decided by the authorization gate before these handlers run.
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ....core.exceptions import BadRequestError
from ....core.gate import CurrentPrincipal
from ....db.session import DbSession, get_db
from ....models.enums import UserRole
from ....repositories.user_repository import UserRepository
from ....schemas.user import (
    ProfileResponse,
    UserListResponse,
    UserResponse,
    UserRoleUpdate,
    UserUpdateResponse,
)
from ....services.principal_service import PrincipalService

logger = structlog.get_logger(__name__)

router = APIRouter()


async def get_user_repo(
    db: AsyncSession = Depends(get_db),
) -> UserRepository:
    """Get user repository with database session."""
    return UserRepository(db)


@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Current user",
    description="Returns the principal resolved from the bearer token.",
)
async def get_profile(principal: CurrentPrincipal) -> ProfileResponse:
    return ProfileResponse.model_validate(principal)


@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List all users",
    description="Get paginated list of users with optional filtering by role.",
)
async def list_users(
    repo: UserRepository = Depends(get_user_repo),
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=100, description="Number of records to return"),
    role: UserRole | None = Query(None, description="Filter by role (admin, doctor, patient)"),
) -> UserListResponse:
    role_value = role.value if role else None
    users = await repo.get_all(skip=skip, limit=limit, role=role_value)
    total = await repo.count_all(role=role_value)

    return UserListResponse(
        success=True,
        users=[UserResponse.model_validate(u) for u in users],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.put(
    "/users/{user_id}/role",
    response_model=UserUpdateResponse,
    summary="Update user role",
    description="Change a user's role (admin, doctor, patient) and create the matching profile.",
)
async def update_user_role(
    user_id: int,
    payload: UserRoleUpdate,
    principal: CurrentPrincipal,
    db: DbSession,
) -> UserUpdateResponse:
    # Prevent self-demotion
    if user_id == principal.id and payload.role != UserRole.ADMIN.value:
        raise BadRequestError(
            message="Cannot demote yourself. Ask another admin.",
            error_code="SELF_DEMOTION",
        )

    user = await PrincipalService(db).set_role(
        user_id,
        payload.role,
        department_id=payload.department_id,
        specialization=payload.specialization,
    )
    logger.info("admin_changed_user_role", admin_id=principal.id, user_id=user_id, new_role=payload.role)

    return UserUpdateResponse(
        success=True,
        message=f"User role updated to '{payload.role}'",
        user=UserResponse.model_validate(user),
    )


