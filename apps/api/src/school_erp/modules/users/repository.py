"""
User Repository

Database operations for user management.
"""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: UserRole,
        school_id: UUID | None = None,
        phone: str | None = None,
        is_active: bool = True,
    ) -> User:
        """
        Create a new user record.

        Args:
            db: Database session
            email: User's email address (unique)
            password_hash: Hashed password
            first_name: User's first name
            last_name: User's last name
            role: User's role
            school_id: School ID (required for non-global roles)
            phone: Phone number (optional)
            is_active: Whether user is active

        Returns:
            Created User instance

        Raises:
            IntegrityError: If the email is already registered
        """
        user = User(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role=role,
            school_id=school_id,
            phone=phone,
            is_active=is_active,
        )

        db.add(user)
        await db.commit()
        await db.refresh(user)

        logger.info(f"Created user: {user.id} - {user.email} ({user.role.value})")
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: str | UUID) -> User | None:
        """
        Get a user by ID.

        Args:
            db: Database session
            user_id: User UUID

        Returns:
            User instance or None if not found
        """
        return await db.get(User, UUID(str(user_id)), populate_existing=True)

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """
        Get a user by email address (case-insensitive).

        Args:
            db: Database session
            email: Email address

        Returns:
            User instance or None if not found
        """
        result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
        return result.scalar_one_or_none()

    @staticmethod
    async def email_exists(db: AsyncSession, email: str) -> bool:
        """Check if an email address is already registered."""
        user = await UserRepository.get_by_email(db, email)
        return user is not None

    @staticmethod
    async def list_paginated(
        db: AsyncSession,
        *,
        role: UserRole | None = None,
        school_id: UUID | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[User], int]:
        """
        List users with filters and pagination.

        Returns:
            Tuple of (users, total count)
        """
        stmt = select(User)
        if role is not None:
            stmt = stmt.where(User.role == role)
        if school_id is not None:
            stmt = stmt.where(User.school_id == school_id)
        if is_active is not None:
            stmt = stmt.where(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    User.email.ilike(pattern),
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                )
            )

        total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await db.execute(stmt.order_by(User.created_at.desc()).offset(skip).limit(limit))
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def list_school_admins(db: AsyncSession, school_id: UUID) -> list[User]:
        """Get the active school admins of a tenant."""
        result = await db.execute(
            select(User).where(
                User.school_id == school_id,
                User.role == UserRole.SCHOOL_ADMIN,
                User.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    @staticmethod
    async def list_active_ids(db: AsyncSession) -> list[UUID]:
        """Get the IDs of every active user."""
        result = await db.execute(select(User.id).where(User.is_active.is_(True)))
        return list(result.scalars().all())

    @staticmethod
    async def update(db: AsyncSession, user: User, **fields) -> User:
        """Apply field updates to a user."""
        for key, value in fields.items():
            setattr(user, key, value)

        await db.commit()
        await db.refresh(user)

        logger.info(f"Updated user {user.id}: {sorted(fields)}")
        return user

    @staticmethod
    async def count(db: AsyncSession, *, active_only: bool = False) -> int:
        """Count users."""
        stmt = select(func.count()).select_from(User)
        if active_only:
            stmt = stmt.where(User.is_active.is_(True))
        return await db.scalar(stmt) or 0
