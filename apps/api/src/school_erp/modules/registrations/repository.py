"""
Registration Repository

Database operations for registrations.

Every transition is a single conditional UPDATE whose WHERE clause carries
both the ownership predicate and the allowed source states. A zero-row
result means "not yours" or "not in a state that allows this"; the service
re-reads the row to tell the two apart.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.modules.registrations.models import Registration, RegistrationStatus

logger = logging.getLogger(__name__)


# ============================================
# Status State Machine
# ============================================

VALID_STATUS_TRANSITIONS: dict[RegistrationStatus, set[RegistrationStatus]] = {
    RegistrationStatus.PENDING: {
        RegistrationStatus.SUBMITTED,  # Evidence/details submitted
    },
    RegistrationStatus.SUBMITTED: {
        RegistrationStatus.APPROVED,  # Accepted by a super admin
        RegistrationStatus.REJECTED,  # Declined by a super admin
    },
    RegistrationStatus.REJECTED: {
        RegistrationStatus.SUBMITTED,  # Resubmission
    },
    # Terminal
    RegistrationStatus.APPROVED: set(),
}


def can_transition(current: RegistrationStatus, new: RegistrationStatus) -> bool:
    """Check whether the state machine allows current -> new."""
    return new in VALID_STATUS_TRANSITIONS.get(current, set())


def sources_for(new: RegistrationStatus) -> set[RegistrationStatus]:
    """States from which `new` can be reached."""
    return {status for status, targets in VALID_STATUS_TRANSITIONS.items() if new in targets}


# ============================================
# Reads
# ============================================


async def get_by_id(db: AsyncSession, registration_id: UUID) -> Registration | None:
    """Get a registration by ID, always reading the stored row."""
    return await db.get(Registration, registration_id, populate_existing=True)


async def get_for_resource(
    db: AsyncSession,
    resource_kind: str,
    resource_id: UUID,
    registration_id: UUID,
    tenant_id: UUID | None = None,
) -> Registration | None:
    """
    Get a registration of a given resource.

    When `tenant_id` is given, registrations of other tenants are not returned.
    """
    stmt = select(Registration).where(
        Registration.id == registration_id,
        Registration.resource_kind == resource_kind,
        Registration.resource_id == resource_id,
    )
    if tenant_id is not None:
        stmt = stmt.where(Registration.tenant_id == tenant_id)
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return result.scalar_one_or_none()


async def find_for_tenant(
    db: AsyncSession,
    tenant_id: UUID,
    resource_kind: str,
    resource_id: UUID,
) -> Registration | None:
    """Get the tenant's registration for a resource, if any."""
    result = await db.execute(
        select(Registration)
        .where(
            Registration.tenant_id == tenant_id,
            Registration.resource_kind == resource_kind,
            Registration.resource_id == resource_id,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_for_resource(
    db: AsyncSession,
    resource_kind: str,
    resource_id: UUID,
    tenant_id: UUID | None = None,
) -> list[Registration]:
    """List registrations of a resource, optionally restricted to one tenant."""
    stmt = select(Registration).where(
        Registration.resource_kind == resource_kind,
        Registration.resource_id == resource_id,
    )
    if tenant_id is not None:
        stmt = stmt.where(Registration.tenant_id == tenant_id)
    result = await db.execute(stmt.order_by(Registration.created_at.desc()))
    return list(result.scalars().all())


async def count_active_for_resource(
    db: AsyncSession,
    resource_kind: str,
    resource_id: UUID,
) -> int:
    """Count registrations of a resource that hold a place (not rejected)."""
    count = await db.scalar(
        select(func.count())
        .select_from(Registration)
        .where(
            Registration.resource_kind == resource_kind,
            Registration.resource_id == resource_id,
            Registration.status != RegistrationStatus.REJECTED,
        )
    )
    return count or 0


async def count_by_status(
    db: AsyncSession,
    *,
    tenant_id: UUID | None = None,
    resource_kind: str | None = None,
) -> dict[str, int]:
    """Count registrations per status."""
    stmt = select(Registration.status, func.count()).group_by(Registration.status)
    if tenant_id is not None:
        stmt = stmt.where(Registration.tenant_id == tenant_id)
    if resource_kind is not None:
        stmt = stmt.where(Registration.resource_kind == resource_kind)

    result = await db.execute(stmt)
    counts = {status.value: 0 for status in RegistrationStatus}
    for status, count in result.all():
        counts[RegistrationStatus(status).value] = count
    return counts


async def count_by_tenant_and_status(
    db: AsyncSession,
    resource_kind: str,
) -> dict[UUID, dict[str, int]]:
    """Count a kind's registrations per school and status."""
    result = await db.execute(
        select(Registration.tenant_id, Registration.status, func.count())
        .where(Registration.resource_kind == resource_kind)
        .group_by(Registration.tenant_id, Registration.status)
    )
    counts: dict[UUID, dict[str, int]] = {}
    for tenant_id, status, count in result.all():
        per_status = counts.setdefault(tenant_id, {s.value: 0 for s in RegistrationStatus})
        per_status[RegistrationStatus(status).value] = count
    return counts


async def count_distinct_resources(
    db: AsyncSession,
    resource_kind: str,
    status: RegistrationStatus,
    tenant_id: UUID,
) -> int:
    """Count distinct resources of a kind the tenant holds a registration in `status` for."""
    count = await db.scalar(
        select(func.count(func.distinct(Registration.resource_id))).where(
            Registration.resource_kind == resource_kind,
            Registration.status == status,
            Registration.tenant_id == tenant_id,
        )
    )
    return count or 0


# ============================================
# Writes
# ============================================


async def create(db: AsyncSession, **fields) -> Registration:
    """
    Insert a registration.

    Raises:
        IntegrityError: The tenant already has a registration for the resource
    """
    registration = Registration(**fields)
    db.add(registration)
    await db.commit()
    await db.refresh(registration)

    logger.info(
        f"Created registration {registration.id}: tenant {registration.tenant_id} -> "
        f"{registration.resource_kind}:{registration.resource_id} ({registration.status.value})"
    )
    return registration


async def submit(
    db: AsyncSession,
    registration_id: UUID,
    tenant_id: UUID,
    submitted_by: UUID,
    at: datetime,
    evidence: list[dict] | None = None,
) -> int:
    """
    Transition pending/rejected -> submitted.

    Resubmitting after a rejection increments `version` and clears the
    previous review.

    Returns:
        Rows updated (0 or 1)
    """
    values: dict = {
        "status": RegistrationStatus.SUBMITTED,
        "submitted_by": submitted_by,
        "submitted_at": at,
        "reviewed_by": None,
        "reviewed_at": None,
        "comments": None,
        "version": case(
            (Registration.status == RegistrationStatus.REJECTED, Registration.version + 1),
            else_=Registration.version,
        ),
    }
    if evidence:
        values["evidence"] = evidence

    result = await db.execute(
        update(Registration)
        .where(
            Registration.id == registration_id,
            Registration.tenant_id == tenant_id,
            Registration.status.in_(list(sources_for(RegistrationStatus.SUBMITTED))),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def review(
    db: AsyncSession,
    registration_id: UUID,
    decision: RegistrationStatus,
    reviewed_by: UUID,
    at: datetime,
    comments: str | None = None,
) -> int:
    """
    Transition submitted -> approved/rejected.

    Returns:
        Rows updated (0 or 1)
    """
    result = await db.execute(
        update(Registration)
        .where(
            Registration.id == registration_id,
            Registration.status.in_(list(sources_for(decision))),
        )
        .values(
            status=decision,
            reviewed_by=reviewed_by,
            reviewed_at=at,
            comments=comments,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def delete_for_tenant(
    db: AsyncSession,
    tenant_id: UUID,
    resource_kind: str,
    resource_id: UUID,
) -> int:
    """
    Withdraw the tenant's registration unless it was approved.

    Returns:
        Rows deleted (0 or 1)
    """
    result = await db.execute(
        delete(Registration)
        .where(
            Registration.tenant_id == tenant_id,
            Registration.resource_kind == resource_kind,
            Registration.resource_id == resource_id,
            Registration.status != RegistrationStatus.APPROVED,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def delete_by_id(
    db: AsyncSession,
    registration_id: UUID,
    resource_kind: str,
    resource_id: UUID,
) -> int:
    """Delete any registration of a resource by ID. Returns rows deleted."""
    result = await db.execute(
        delete(Registration)
        .where(
            Registration.id == registration_id,
            Registration.resource_kind == resource_kind,
            Registration.resource_id == resource_id,
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


async def delete_for_resource(db: AsyncSession, resource_kind: str, resource_id: UUID) -> int:
    """
    Delete every registration of a resource. Does not commit: runs inside
    the transaction that deletes the resource.
    """
    result = await db.execute(
        delete(Registration)
        .where(
            Registration.resource_kind == resource_kind,
            Registration.resource_id == resource_id,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
