"""
Student Structure Repository

Database operations for class structures, class lists and promotions.
Every query is bound to one school.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from school_erp.modules.resources.models import Student, StudentStatus
from school_erp.modules.students.models import ClassStructure, StudentPromotion
from school_erp.modules.users.models import User

logger = logging.getLogger(__name__)


# ============================================
# Class structure
# ============================================


async def list_classes(db: AsyncSession, tenant_id: UUID) -> list[ClassStructure]:
    """A school's classes in display order."""
    result = await db.execute(
        select(ClassStructure)
        .where(ClassStructure.tenant_id == tenant_id)
        .order_by(ClassStructure.sort_order, ClassStructure.class_name)
    )
    return list(result.scalars().all())


async def upsert_class(
    db: AsyncSession,
    tenant_id: UUID,
    class_name: str,
    created_by: UUID,
    **fields,
) -> ClassStructure:
    """
    Create a class or replace its settings.

    Raises:
        IntegrityError: A concurrent request created the same class
    """
    result = await db.execute(
        select(ClassStructure).where(
            ClassStructure.tenant_id == tenant_id,
            ClassStructure.class_name == class_name,
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = ClassStructure(
            tenant_id=tenant_id, class_name=class_name, created_by=created_by, **fields
        )
        db.add(row)
    else:
        for key, value in fields.items():
            setattr(row, key, value)

    await db.commit()
    await db.refresh(row)
    return row


async def graduation_classes(db: AsyncSession, tenant_id: UUID) -> set[str]:
    """Names of the school's graduation classes."""
    result = await db.execute(
        select(ClassStructure.class_name).where(
            ClassStructure.tenant_id == tenant_id,
            ClassStructure.is_graduation_class.is_(True),
        )
    )
    return set(result.scalars().all())


# ============================================
# Class lists
# ============================================


async def list_by_class(
    db: AsyncSession,
    tenant_id: UUID,
    class_name: str,
    section: str | None = None,
) -> list[Student]:
    """Active students of a class (optionally one section), by section and roll number."""
    stmt = select(Student).where(
        Student.tenant_id == tenant_id,
        Student.class_name == class_name,
        Student.status == StudentStatus.ACTIVE,
    )
    if section:
        stmt = stmt.where(Student.section == section)
    result = await db.execute(stmt.order_by(Student.section, Student.roll_number))
    return list(result.scalars().all())


async def list_graduated(
    db: AsyncSession,
    tenant_id: UUID | None,
    academic_year: str | None = None,
) -> list[Student]:
    """Graduated students, most recent graduation first."""
    stmt = select(Student).where(Student.status == StudentStatus.GRADUATED)
    if tenant_id is not None:
        stmt = stmt.where(Student.tenant_id == tenant_id)
    if academic_year:
        stmt = stmt.where(Student.academic_year == academic_year)
    result = await db.execute(
        stmt.order_by(Student.graduation_date.desc(), Student.last_name, Student.first_name)
    )
    return list(result.scalars().all())


# ============================================
# Promotions
# ============================================


async def get_students(
    db: AsyncSession, tenant_id: UUID, student_ids: list[UUID]
) -> dict[UUID, Student]:
    """The school's students among `student_ids`, keyed by ID."""
    result = await db.execute(
        select(Student)
        .where(Student.id.in_(student_ids), Student.tenant_id == tenant_id)
        .with_for_update()
    )
    return {student.id: student for student in result.scalars().all()}


async def promote(
    db: AsyncSession,
    students: list[Student],
    *,
    tenant_id: UUID,
    to_class: str,
    to_section: str | None,
    academic_year: str,
    graduating: set[str],
    promoted_by: UUID,
    notes: str | None,
    at: datetime,
) -> list[StudentPromotion]:
    """
    Move students to their new class and record the history, in one commit.

    Students leaving a graduation class are marked graduated.
    """
    promotions = []
    for student in students:
        is_graduation = student.class_name in graduating
        promotions.append(
            StudentPromotion(
                tenant_id=tenant_id,
                student_id=student.id,
                from_class=student.class_name,
                from_section=student.section,
                to_class=to_class,
                to_section=to_section,
                academic_year=academic_year,
                is_graduation=is_graduation,
                notes=notes,
                promoted_by=promoted_by,
                promoted_at=at,
            )
        )

        student.class_name = to_class
        student.section = to_section
        student.academic_year = academic_year
        if is_graduation:
            student.status = StudentStatus.GRADUATED
            student.graduation_date = at.date()

    db.add_all(promotions)
    await db.commit()

    logger.info(f"Promoted {len(promotions)} student(s) of tenant {tenant_id} to {to_class}")
    return promotions


async def list_promotions(
    db: AsyncSession,
    tenant_id: UUID | None,
    academic_year: str | None = None,
) -> list[tuple[StudentPromotion, str, str | None]]:
    """
    Promotion history, newest first.

    Returns:
        List of (promotion, student name, promoter name)
    """
    promoter = aliased(User)
    stmt = (
        select(
            StudentPromotion,
            func.trim(Student.first_name + " " + Student.last_name),
            func.trim(promoter.first_name + " " + promoter.last_name),
        )
        .join(Student, Student.id == StudentPromotion.student_id)
        .outerjoin(promoter, promoter.id == StudentPromotion.promoted_by)
    )
    if tenant_id is not None:
        stmt = stmt.where(StudentPromotion.tenant_id == tenant_id)
    if academic_year:
        stmt = stmt.where(StudentPromotion.academic_year == academic_year)

    result = await db.execute(stmt.order_by(StudentPromotion.promoted_at.desc()))
    return [tuple(row) for row in result.all()]
