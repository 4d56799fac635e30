"""
School Service Layer

Business logic for school (tenant) management. Only super admins reach
these operations.

Deactivating a school does not touch its users: the authorization guard
denies every principal whose school is not active.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.errors import NotFoundError
from school_erp.modules.schools.models import School, SchoolStatus
from school_erp.modules.schools.repository import SchoolRepository
from school_erp.modules.schools.schemas import SchoolCreate, SchoolUpdate

logger = logging.getLogger(__name__)


async def get_school(db: AsyncSession, school_id: UUID) -> School:
    """
    Get a school by ID.

    Raises:
        NotFoundError: If the school does not exist
    """
    school = await SchoolRepository.get_by_id(db, school_id)
    if school is None:
        raise NotFoundError("School", school_id)
    return school


async def list_schools(
    db: AsyncSession,
    *,
    search: str | None = None,
    include_inactive: bool = True,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[School], int]:
    """List schools with optional search and pagination."""
    return await SchoolRepository.list_paginated(
        db,
        search=search,
        include_inactive=include_inactive,
        skip=skip,
        limit=limit,
    )


async def create_school(db: AsyncSession, data: SchoolCreate) -> School:
    """Create an active school."""
    return await SchoolRepository.create(
        db,
        name=data.name,
        logo_url=data.logo_url,
        email=data.email,
        phone=data.phone,
        address=data.address,
    )


async def update_school(db: AsyncSession, school_id: UUID, data: SchoolUpdate) -> School:
    """Update school details."""
    school = await get_school(db, school_id)
    fields = data.model_dump(exclude_unset=True)
    if not fields:
        return school
    return await SchoolRepository.update(db, school, **fields)


async def toggle_school_status(db: AsyncSession, school_id: UUID) -> School:
    """
    Activate or deactivate a school.

    Raises:
        NotFoundError: If the school does not exist
    """
    school = await get_school(db, school_id)
    new_status = SchoolStatus.DEACTIVATED if school.is_active else SchoolStatus.ACTIVE
    school = await SchoolRepository.update_status(db, school.id, new_status)
    logger.info(f"School {school.id} is now {new_status.value}")
    return school
