"""
Schools Router

All endpoints require the super admin role.

Endpoints:
- GET  /schools                     - List schools
- POST /schools                     - Create school
- GET  /schools/{id}                - Get school
- PUT  /schools/{id}                - Update school
- POST /schools/{id}/toggle-status  - Activate/deactivate school
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, require_super_admin
from school_erp.core.database import get_db
from school_erp.core.responses import ApiResponse, Page, ok
from school_erp.modules.schools import service
from school_erp.modules.schools.schemas import SchoolCreate, SchoolResponse, SchoolUpdate

router = APIRouter()


@router.get(
    "",
    response_model=ApiResponse[Page[SchoolResponse]],
    summary="List schools",
)
async def list_schools(
    search: str | None = Query(None, max_length=100),
    include_inactive: bool = Query(True),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    schools, total = await service.list_schools(
        db,
        search=search,
        include_inactive=include_inactive,
        skip=skip,
        limit=limit,
    )
    items = [SchoolResponse.model_validate(school) for school in schools]
    return ok(Page(items=items, total=total, skip=skip, limit=limit))


@router.post(
    "",
    response_model=ApiResponse[SchoolResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create school",
)
async def create_school(
    data: SchoolCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    school = await service.create_school(db, data)
    return ok(SchoolResponse.model_validate(school), "School created successfully.")


@router.get(
    "/{school_id}",
    response_model=ApiResponse[SchoolResponse],
    summary="Get school",
)
async def get_school(
    school_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    school = await service.get_school(db, school_id)
    return ok(SchoolResponse.model_validate(school))


@router.put(
    "/{school_id}",
    response_model=ApiResponse[SchoolResponse],
    summary="Update school",
)
async def update_school(
    school_id: UUID,
    data: SchoolUpdate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    school = await service.update_school(db, school_id, data)
    return ok(SchoolResponse.model_validate(school), "School updated successfully.")


@router.post(
    "/{school_id}/toggle-status",
    response_model=ApiResponse[SchoolResponse],
    summary="Activate or deactivate school",
    description="Principals of a deactivated school are denied on their next request.",
)
async def toggle_school_status(
    school_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(require_super_admin),
):
    school = await service.toggle_school_status(db, school_id)
    message = "School activated." if school.is_active else "School deactivated."
    return ok(SchoolResponse.model_validate(school), message)
