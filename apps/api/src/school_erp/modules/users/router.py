"""
Users Router

Endpoints:
- GET  /users                       - List users (super admin)
- POST /users                       - Create user (super admin)
- GET  /users/{id}                  - Get user (super admin)
- PUT  /users/{id}                  - Update user (super admin)
- POST /users/{id}/toggle-status    - Activate/deactivate user (super admin)
- POST /users/{id}/reset-password   - Set a new password (super admin)
- GET  /profile                     - Current principal's profile
- PUT  /profile                     - Update own profile
- PUT  /profile/password            - Change own password
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal, require_super_admin
from school_erp.core.database import get_db
from school_erp.core.responses import ApiResponse, Page, ok
from school_erp.modules.users import service
from school_erp.modules.users.models import UserRole
from school_erp.modules.users.schemas import (
    PasswordChange,
    PasswordReset,
    ProfileUpdate,
    UserCreate,
    UserResponse,
    UserUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter()
profile_router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[Page[UserResponse]],
    summary="List users",
    description="List users with optional role, school, status and text filters.",
)
async def list_users(
    role: UserRole | None = Query(None),
    school_id: UUID | None = Query(None),
    is_active: bool | None = Query(None),
    search: str | None = Query(None, max_length=100),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    users, total = await service.list_users(
        db,
        role=role,
        school_id=school_id,
        is_active=is_active,
        search=search,
        skip=skip,
        limit=limit,
    )
    items = [UserResponse.model_validate(user) for user in users]
    return ok(Page(items=items, total=total, skip=skip, limit=limit))


@router.post(
    "",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    responses={400: {"description": "Invalid role/school combination or duplicate email"}},
)
async def create_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    user = await service.create_user(db, data)
    logger.info(f"User {user.id} created by {principal.id}")
    return ok(UserResponse.model_validate(user), "User created successfully.")


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Get user",
)
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    user = await service.get_user(db, user_id)
    return ok(UserResponse.model_validate(user))


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserResponse],
    summary="Update user",
)
async def update_user(
    user_id: UUID,
    data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    user = await service.update_user(db, user_id, data)
    return ok(UserResponse.model_validate(user), "User updated successfully.")


@router.post(
    "/{user_id}/toggle-status",
    response_model=ApiResponse[UserResponse],
    summary="Activate or deactivate user",
    description="Deactivated users keep their data but are denied on their next request.",
)
async def toggle_user_status(
    user_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    user = await service.toggle_user_status(db, principal, user_id)
    message = "User activated." if user.is_active else "User deactivated."
    return ok(UserResponse.model_validate(user), message)


@router.post(
    "/{user_id}/reset-password",
    response_model=ApiResponse[None],
    summary="Reset user password",
)
async def reset_password(
    user_id: UUID,
    data: PasswordReset,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    await service.reset_password(db, user_id, data.new_password)
    return ok(message="Password reset successfully.")


@profile_router.get(
    "",
    response_model=ApiResponse[UserResponse],
    summary="Get own profile",
)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = await service.get_user(db, principal.id)
    return ok(UserResponse.model_validate(user))


@profile_router.put(
    "",
    response_model=ApiResponse[UserResponse],
    summary="Update own profile",
)
async def update_profile(
    data: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = await service.update_profile(db, principal, data)
    return ok(UserResponse.model_validate(user), "Profile updated successfully.")


@profile_router.put(
    "/password",
    response_model=ApiResponse[None],
    summary="Change own password",
    responses={400: {"description": "Current password is incorrect"}},
)
async def change_password(
    data: PasswordChange,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    await service.change_password(db, principal, data)
    return ok(message="Password changed successfully.")
