"""
School Repository

Database operations for school (tenant) management.
"""

import logging
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.modules.schools.models import School, SchoolStatus

logger = logging.getLogger(__name__)


class SchoolRepository:
    """Repository for school database operations."""

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        name: str,
        logo_url: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        address: str | None = None,
    ) -> School:
        """
        Create a new school record.

        Args:
            db: Database session
            name: School name
            logo_url: Logo URL (optional)
            email: School email address (optional)
            phone: School phone number (optional)
            address: Full address (optional)

        Returns:
            Created School instance
        """
        school = School(
            name=name,
            logo_url=logo_url,
            email=email,
            phone=phone,
            address=address,
            status=SchoolStatus.ACTIVE,
            is_active=True,
        )

        db.add(school)
        await db.commit()
        await db.refresh(school)

        logger.info(f"Created school: {school.id} - {school.name}")
        return school

    @staticmethod
    async def get_by_id(db: AsyncSession, school_id: str | UUID) -> School | None:
        """Get a school by ID."""
        return await db.get(School, UUID(str(school_id)))

    @staticmethod
    async def list_paginated(
        db: AsyncSession,
        *,
        search: str | None = None,
        include_inactive: bool = True,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[School], int]:
        """
        List schools with optional search and pagination.

        Returns:
            Tuple of (schools, total count)
        """
        stmt = select(School)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(School.name.ilike(pattern), School.email.ilike(pattern)))
        if not include_inactive:
            stmt = stmt.where(School.is_active.is_(True))

        total = await db.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await db.execute(stmt.order_by(School.name).offset(skip).limit(limit))
        return list(result.scalars().all()), total or 0

    @staticmethod
    async def list_all(db: AsyncSession) -> list[School]:
        """Every school, by name."""
        result = await db.execute(select(School).order_by(School.name))
        return list(result.scalars().all())

    @staticmethod
    async def update(db: AsyncSession, school: School, **fields) -> School:
        """Apply field updates to a school."""
        for key, value in fields.items():
            setattr(school, key, value)

        await db.commit()
        await db.refresh(school)

        logger.info(f"Updated school {school.id}: {sorted(fields)}")
        return school

    @staticmethod
    async def update_status(
        db: AsyncSession,
        school_id: str | UUID,
        status: SchoolStatus,
    ) -> School | None:
        """
        Update a school's status.

        Args:
            db: Database session
            school_id: School UUID
            status: New status

        Returns:
            Updated School instance or None if not found
        """
        school = await SchoolRepository.get_by_id(db, school_id)
        if not school:
            return None

        school.status = status
        school.is_active = status == SchoolStatus.ACTIVE

        await db.commit()
        await db.refresh(school)

        logger.info(f"Updated school {school_id} status to {status.value}")
        return school

    @staticmethod
    async def count(db: AsyncSession, *, active_only: bool = False) -> int:
        """Count schools."""
        stmt = select(func.count()).select_from(School)
        if active_only:
            stmt = stmt.where(School.is_active.is_(True))
        return await db.scalar(stmt) or 0
