"""
Dashboard Service

Read-only summary counts. Super admins get platform-wide figures; school
principals only ever see counts of their own school (plus global ISO
clauses for the ISO progress).

ISO analytics: a school is certified once every active clause it can see
(global plus its own) has an approved submission.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal
from school_erp.core.errors import NotFoundError
from school_erp.modules.dashboard.schemas import (
    AdminDashboardStats,
    IsoAnalytics,
    IsoProgress,
    RegistrationCounts,
    SchoolDashboardStats,
    SchoolIsoProgress,
)
from school_erp.modules.notifications import repository as notification_repository
from school_erp.modules.registrations import repository as registration_repository
from school_erp.modules.registrations.models import RegistrationStatus
from school_erp.modules.resources.kinds import ISO_CLAUSES, RESOURCE_KINDS, STUDENTS
from school_erp.modules.resources.models import IsoClauseStatus
from school_erp.modules.resources.repository import repository_for
from school_erp.modules.schools.models import School
from school_erp.modules.schools.repository import SchoolRepository
from school_erp.modules.users.repository import UserRepository


def _percent(part: int, whole: int) -> float:
    return round(part * 100 / whole, 1) if whole else 0.0


async def get_stats(
    db: AsyncSession, principal: Principal
) -> AdminDashboardStats | SchoolDashboardStats:
    """Dashboard counts for the principal's scope."""
    if principal.is_global:
        return await _platform_stats(db)
    return await _school_stats(db, principal)


async def _platform_stats(db: AsyncSession) -> AdminDashboardStats:
    resources = {
        slug: await repository_for(slug, kind.model).count(db)
        for slug, kind in RESOURCE_KINDS.items()
    }
    registrations = await registration_repository.count_by_status(db)

    iso = await registration_repository.count_by_status(db, resource_kind=ISO_CLAUSES.slug)
    decided = iso[RegistrationStatus.APPROVED.value] + iso[RegistrationStatus.REJECTED.value]

    return AdminDashboardStats(
        schools=await SchoolRepository.count(db),
        active_schools=await SchoolRepository.count(db, active_only=True),
        active_users=await UserRepository.count(db, active_only=True),
        resources=resources,
        registrations=RegistrationCounts(**registrations),
        iso_approval_rate=_percent(iso[RegistrationStatus.APPROVED.value], decided),
    )


async def _school_stats(db: AsyncSession, principal: Principal) -> SchoolDashboardStats:
    tenant_id = principal.tenant_id

    students = await repository_for(STUDENTS.slug, STUDENTS.model).count(db, tenant_id=tenant_id)
    registrations = await registration_repository.count_by_status(db, tenant_id=tenant_id)

    active_clauses = await repository_for(ISO_CLAUSES.slug, ISO_CLAUSES.model).count(
        db, tenant_id=tenant_id, include_global=True, status=IsoClauseStatus.ACTIVE
    )
    approved_clauses = await registration_repository.count_distinct_resources(
        db, ISO_CLAUSES.slug, RegistrationStatus.APPROVED, tenant_id
    )

    return SchoolDashboardStats(
        students=students,
        registrations=RegistrationCounts(**registrations),
        unread_notifications=await notification_repository.count_unread(db, principal.id),
        iso_progress=IsoProgress(
            approved_clauses=approved_clauses,
            active_clauses=active_clauses,
            percent=_percent(min(approved_clauses, active_clauses), active_clauses),
        ),
    )


# ============================================
# ISO analytics
# ============================================


def _school_progress(
    school: School, total_clauses: int, counts: dict[str, int] | None
) -> SchoolIsoProgress:
    counts = counts or {}
    approved = min(counts.get(RegistrationStatus.APPROVED.value, 0), total_clauses)
    progress = round(approved * 100 / total_clauses) if total_clauses else 0
    return SchoolIsoProgress(
        school_id=school.id,
        name=school.name,
        status=school.status.value,
        total_clauses=total_clauses,
        approved_clauses=approved,
        submitted_clauses=counts.get(RegistrationStatus.SUBMITTED.value, 0),
        pending_clauses=counts.get(RegistrationStatus.PENDING.value, 0),
        rejected_clauses=counts.get(RegistrationStatus.REJECTED.value, 0),
        progress=progress,
        is_certified=total_clauses > 0 and approved == total_clauses,
    )


async def get_iso_analytics(
    db: AsyncSession, principal: Principal
) -> IsoAnalytics | SchoolIsoProgress:
    """
    ISO certification progress.

    Super admins get every school plus platform aggregates; school
    principals get their own school only.
    """
    clauses = repository_for(ISO_CLAUSES.slug, ISO_CLAUSES.model)
    active_by_tenant = await clauses.count_by_tenant(db, status=IsoClauseStatus.ACTIVE)
    global_clauses = active_by_tenant.get(None, 0)

    def visible_clauses(tenant_id: UUID) -> int:
        return global_clauses + active_by_tenant.get(tenant_id, 0)

    if not principal.is_global:
        school = await SchoolRepository.get_by_id(db, principal.tenant_id)
        if school is None:
            raise NotFoundError("School", principal.tenant_id)
        counts = await registration_repository.count_by_status(
            db, tenant_id=school.id, resource_kind=ISO_CLAUSES.slug
        )
        return _school_progress(school, visible_clauses(school.id), counts)

    schools = await SchoolRepository.list_all(db)
    per_school = await registration_repository.count_by_tenant_and_status(db, ISO_CLAUSES.slug)
    progress = [
        _school_progress(school, visible_clauses(school.id), per_school.get(school.id))
        for school in schools
    ]
    certified = sum(1 for entry in progress if entry.is_certified)

    return IsoAnalytics(
        total_schools=len(schools),
        active_schools=sum(1 for school in schools if school.is_active),
        certified_schools=certified,
        certification_rate=round(certified * 100 / len(schools)) if schools else 0,
        average_progress=(
            round(sum(entry.progress for entry in progress) / len(progress)) if progress else 0
        ),
        total_clauses=sum(active_by_tenant.values()),
        registrations=RegistrationCounts(
            **await registration_repository.count_by_status(db, resource_kind=ISO_CLAUSES.slug)
        ),
        schools=progress,
    )
