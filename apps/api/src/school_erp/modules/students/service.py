"""
Student Structure Service Layer

Class structure, class lists and promotions.

Tenant rules:
- School principals always act on their own school; a `school_id` they
  pass is ignored.
- Super admins pick the school with `school_id`. Listings that span
  schools (graduates, promotion history) accept no school at all.
- Only admins (super admin, school admin) change the class structure or
  promote students.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, ensure_role
from school_erp.core.errors import ConflictError, NotFoundError, ValidationError
from school_erp.modules.notifications import service as notifications
from school_erp.modules.notifications.models import NotificationCategory
from school_erp.modules.resources.models import Student
from school_erp.modules.schools.repository import SchoolRepository
from school_erp.modules.shared import utcnow
from school_erp.modules.students import repository
from school_erp.modules.students.models import ClassStructure
from school_erp.modules.students.schemas import (
    ClassStructureUpsert,
    PromotionRecord,
    PromotionRequest,
    PromotionResult,
)
from school_erp.modules.users.models import UserRole

logger = logging.getLogger(__name__)

_ADMINS = frozenset({UserRole.SUPER_ADMIN, UserRole.SCHOOL_ADMIN})


async def _school_scope(
    db: AsyncSession,
    principal: Principal,
    school_id: UUID | None,
    *,
    required: bool = True,
) -> UUID | None:
    """
    The school an operation runs against.

    Raises:
        ValidationError: Super admin without a school where one is required,
            or an unknown school
    """
    if not principal.is_global:
        return principal.tenant_id
    if school_id is None:
        if required:
            raise ValidationError("A school is required.")
        return None
    if await SchoolRepository.get_by_id(db, school_id) is None:
        raise ValidationError("The selected school does not exist.")
    return school_id


async def get_class_structure(
    db: AsyncSession, principal: Principal, school_id: UUID | None = None
) -> list[ClassStructure]:
    tenant_id = await _school_scope(db, principal, school_id)
    return await repository.list_classes(db, tenant_id)


async def save_class(
    db: AsyncSession, principal: Principal, data: ClassStructureUpsert
) -> ClassStructure:
    """
    Create a class or replace its settings.

    Raises:
        ForbiddenError: Not an admin
        ValidationError: No school
        ConflictError: Created concurrently
    """
    ensure_role(principal, _ADMINS)
    tenant_id = await _school_scope(db, principal, data.school_id)

    fields = data.model_dump(exclude={"school_id", "class_name"})
    try:
        row = await repository.upsert_class(
            db, tenant_id, data.class_name.strip(), principal.id, **fields
        )
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(f"Class {data.class_name} was just created; retry the update.") from e

    logger.info(f"Class {row.class_name} saved for tenant {tenant_id} by {principal.id}")
    return row


async def list_by_class(
    db: AsyncSession,
    principal: Principal,
    class_name: str,
    section: str | None = None,
    school_id: UUID | None = None,
) -> list[Student]:
    tenant_id = await _school_scope(db, principal, school_id)
    return await repository.list_by_class(db, tenant_id, class_name, section)


async def list_graduated(
    db: AsyncSession,
    principal: Principal,
    academic_year: str | None = None,
    school_id: UUID | None = None,
) -> list[Student]:
    tenant_id = await _school_scope(db, principal, school_id, required=False)
    return await repository.list_graduated(db, tenant_id, academic_year)


async def promote(
    db: AsyncSession, principal: Principal, data: PromotionRequest
) -> PromotionResult:
    """
    Promote students to a new class, all or none.

    Students leaving a graduation class are marked graduated. Every student
    gets a promotion record.

    Raises:
        ForbiddenError: Not an admin
        ValidationError: No school
        NotFoundError: A student is missing or belongs to another school
    """
    ensure_role(principal, _ADMINS)
    tenant_id = await _school_scope(db, principal, data.school_id)

    found = await repository.get_students(db, tenant_id, data.student_ids)
    missing = [student_id for student_id in data.student_ids if student_id not in found]
    if missing:
        await db.rollback()
        raise NotFoundError("Student", missing[0])

    graduating = await repository.graduation_classes(db, tenant_id)
    promotions = await repository.promote(
        db,
        [found[student_id] for student_id in data.student_ids],
        tenant_id=tenant_id,
        to_class=data.to_class,
        to_section=data.to_section,
        academic_year=data.academic_year,
        graduating=graduating,
        promoted_by=principal.id,
        notes=data.notes,
        at=utcnow(),
    )
    result = PromotionResult(
        promoted_count=len(promotions),
        graduated_count=sum(1 for p in promotions if p.is_graduation),
    )

    await notifications.emit_to_school_admins(
        db,
        tenant_id,
        "Students promoted",
        f"{result.promoted_count} student(s) promoted to {data.to_class} "
        f"for {data.academic_year}.",
        NotificationCategory.STUDENT,
        data={"promoted": result.promoted_count, "graduated": result.graduated_count},
    )
    return result


async def promotion_history(
    db: AsyncSession,
    principal: Principal,
    academic_year: str | None = None,
    school_id: UUID | None = None,
) -> list[PromotionRecord]:
    tenant_id = await _school_scope(db, principal, school_id, required=False)
    rows = await repository.list_promotions(db, tenant_id, academic_year)
    return [
        PromotionRecord(
            id=promotion.id,
            student_id=promotion.student_id,
            student_name=student_name,
            from_class=promotion.from_class,
            from_section=promotion.from_section,
            to_class=promotion.to_class,
            to_section=promotion.to_section,
            academic_year=promotion.academic_year,
            is_graduation=promotion.is_graduation,
            notes=promotion.notes,
            promoted_by=promotion.promoted_by,
            promoted_by_name=promoter_name,
            promoted_at=promotion.promoted_at,
        )
        for promotion, student_name, promoter_name in rows
    ]
