"""
User Service Layer

Business logic for user management (super admin) and the self-service
profile. Users are never hard-deleted: a super admin toggles `is_active`,
and the authorization guard denies deactivated users on their next request.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal
from school_erp.core.email import send_account_created
from school_erp.core.errors import ConflictError, NotFoundError, ValidationError
from school_erp.core.security import hash_password, verify_password
from school_erp.modules.gamification import service as gamification
from school_erp.modules.gamification.models import ActionType
from school_erp.modules.schools.repository import SchoolRepository
from school_erp.modules.users.models import User, UserRole
from school_erp.modules.users.repository import UserRepository
from school_erp.modules.users.schemas import (
    PasswordChange,
    ProfileUpdate,
    UserCreate,
    UserUpdate,
)

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    UserRole.SUPER_ADMIN: "Super Admin",
    UserRole.SCHOOL_ADMIN: "School Admin",
    UserRole.ECA_COORDINATOR: "ECA Coordinator",
}


async def _resolve_school_id(
    db: AsyncSession,
    role: UserRole,
    school_id: UUID | None,
) -> UUID | None:
    """
    Validate the school assignment for a role.

    Super admins never belong to a school; every other role must belong to
    an existing school.
    """
    if role.is_global:
        return None
    if school_id is None:
        raise ValidationError(f"A school is required for the {role.value} role.")
    school = await SchoolRepository.get_by_id(db, school_id)
    if school is None:
        raise ValidationError("The selected school does not exist.")
    return school.id


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    """
    Get a user by ID.

    Raises:
        NotFoundError: If the user does not exist
    """
    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def list_users(
    db: AsyncSession,
    *,
    role: UserRole | None = None,
    school_id: UUID | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[User], int]:
    """List users with filters and pagination."""
    return await UserRepository.list_paginated(
        db,
        role=role,
        school_id=school_id,
        is_active=is_active,
        search=search,
        skip=skip,
        limit=limit,
    )


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    """
    Create a user.

    Args:
        db: Database session
        data: Validated user data

    Returns:
        Created user

    Raises:
        ValidationError: Non-global role without a valid school
        ConflictError: Email already registered
    """
    school_id = await _resolve_school_id(db, data.role, data.school_id)
    email = data.email.lower()

    if await UserRepository.email_exists(db, email):
        raise ConflictError("A user with this email already exists.")

    try:
        user = await UserRepository.create(
            db,
            email=email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            role=data.role,
            school_id=school_id,
            phone=data.phone,
        )
    except IntegrityError as e:
        await db.rollback()
        logger.warning(f"Duplicate email on user create: {email}")
        raise ConflictError("A user with this email already exists.") from e

    school_name = user.school.name if user.school else None
    await send_account_created(
        to_email=user.email,
        recipient_name=user.full_name,
        role_label=ROLE_LABELS[user.role],
        school_name=school_name,
    )
    return user


async def update_user(db: AsyncSession, user_id: UUID, data: UserUpdate) -> User:
    """
    Update a user's profile fields, role or school.

    Raises:
        NotFoundError: If the user does not exist
        ValidationError: Resulting role/school combination is invalid
    """
    user = await get_user(db, user_id)
    fields = data.model_dump(exclude_unset=True)

    if "role" in fields or "school_id" in fields:
        role = fields.get("role") or user.role
        school_id = fields["school_id"] if "school_id" in fields else user.school_id
        fields["role"] = role
        fields["school_id"] = await _resolve_school_id(db, role, school_id)

    if not fields:
        return user
    return await UserRepository.update(db, user, **fields)


async def toggle_user_status(db: AsyncSession, principal: Principal, user_id: UUID) -> User:
    """
    Activate or deactivate a user.

    Raises:
        NotFoundError: If the user does not exist
        ValidationError: A super admin tries to deactivate themselves
    """
    user = await get_user(db, user_id)
    if user.id == principal.id:
        raise ValidationError("You cannot change the status of your own account.")

    user = await UserRepository.update(db, user, is_active=not user.is_active)
    logger.info(
        f"User {user.id} {'activated' if user.is_active else 'deactivated'} by {principal.id}"
    )
    return user


async def reset_password(db: AsyncSession, user_id: UUID, new_password: str) -> User:
    """Set a new password for a user."""
    user = await get_user(db, user_id)
    user = await UserRepository.update(db, user, password_hash=hash_password(new_password))
    logger.info(f"Password reset for user {user.id}")
    return user


async def update_profile(db: AsyncSession, principal: Principal, data: ProfileUpdate) -> User:
    """Update the current principal's own profile."""
    user = await get_user(db, principal.id)
    fields = data.model_dump(exclude_unset=True)
    if not fields:
        return user

    await UserRepository.update(db, user, **fields)
    await gamification.record_action(db, principal.id, ActionType.PROFILE_UPDATE)
    return await get_user(db, principal.id)


async def change_password(db: AsyncSession, principal: Principal, data: PasswordChange) -> None:
    """
    Change the current principal's password.

    Raises:
        ValidationError: Current password does not match
    """
    user = await get_user(db, principal.id)
    if not verify_password(data.current_password, user.password_hash):
        logger.warning(f"Password change rejected for user {user.id}: wrong current password")
        raise ValidationError("Current password is incorrect.")

    await UserRepository.update(db, user, password_hash=hash_password(data.new_password))
