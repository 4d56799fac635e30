"""
Student Structure Routes

Attached to the students resource router, before `/{resource_id}`:

- GET  /resources/students/class-structure  - Classes of a school
- PUT  /resources/students/class-structure  - Create or replace a class (admins)
- GET  /resources/students/by-class         - Active students of a class
- GET  /resources/students/graduated        - Graduated students
- POST /resources/students/promote          - Promote students (admins)
- GET  /resources/students/promotions       - Promotion history
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal
from school_erp.core.database import get_db
from school_erp.core.responses import ApiResponse, ok
from school_erp.modules.resources.schemas import StudentResponse
from school_erp.modules.students import service
from school_erp.modules.students.schemas import (
    ClassStructureResponse,
    ClassStructureUpsert,
    PromotionRecord,
    PromotionRequest,
    PromotionResult,
)


def attach_student_routes(router: APIRouter) -> None:
    """Add the class structure and promotion endpoints to the students router."""

    @router.get(
        "/class-structure",
        response_model=ApiResponse[list[ClassStructureResponse]],
        summary="Class structure",
        description="Super admins must pass school_id.",
    )
    async def get_class_structure(
        school_id: UUID | None = Query(None),
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        classes = await service.get_class_structure(db, principal, school_id)
        return ok([ClassStructureResponse.model_validate(c) for c in classes])

    @router.put(
        "/class-structure",
        response_model=ApiResponse[ClassStructureResponse],
        summary="Create or update a class",
        responses={403: {"description": "Only admins manage the class structure"}},
    )
    async def save_class(
        data: ClassStructureUpsert,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        row = await service.save_class(db, principal, data)
        return ok(ClassStructureResponse.model_validate(row), "Class saved.")

    @router.get(
        "/by-class",
        response_model=ApiResponse[list[StudentResponse]],
        summary="Students of a class",
    )
    async def list_by_class(
        class_name: str = Query(..., min_length=1, max_length=50),
        section: str | None = Query(None, max_length=20),
        school_id: UUID | None = Query(None),
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        students = await service.list_by_class(db, principal, class_name, section, school_id)
        return ok([StudentResponse.model_validate(s) for s in students])

    @router.get(
        "/graduated",
        response_model=ApiResponse[list[StudentResponse]],
        summary="Graduated students",
    )
    async def list_graduated(
        academic_year: str | None = Query(None, max_length=20),
        school_id: UUID | None = Query(None),
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        students = await service.list_graduated(db, principal, academic_year, school_id)
        return ok([StudentResponse.model_validate(s) for s in students])

    @router.post(
        "/promote",
        response_model=ApiResponse[PromotionResult],
        summary="Promote students",
        responses={
            403: {"description": "Only admins promote students"},
            404: {"description": "A student was not found; nobody was promoted"},
        },
    )
    async def promote(
        data: PromotionRequest,
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        result = await service.promote(db, principal, data)
        return ok(result, f"{result.promoted_count} student(s) promoted.")

    @router.get(
        "/promotions",
        response_model=ApiResponse[list[PromotionRecord]],
        summary="Promotion history",
    )
    async def promotion_history(
        academic_year: str | None = Query(None, max_length=20),
        school_id: UUID | None = Query(None),
        db: AsyncSession = Depends(get_db),
        principal: Principal = Depends(get_current_principal),
    ):
        return ok(await service.promotion_history(db, principal, academic_year, school_id))
