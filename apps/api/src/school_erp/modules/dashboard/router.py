"""
Dashboard Router

Endpoints:
- GET /dashboard/stats         - Role-aware summary counts
- GET /dashboard/iso-analytics - ISO certification progress per school
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal
from school_erp.core.database import get_db
from school_erp.core.responses import ApiResponse, ok
from school_erp.modules.dashboard import service
from school_erp.modules.dashboard.schemas import (
    AdminDashboardStats,
    IsoAnalytics,
    SchoolDashboardStats,
    SchoolIsoProgress,
)

router = APIRouter()


@router.get(
    "/stats",
    response_model=ApiResponse[AdminDashboardStats | SchoolDashboardStats],
    summary="Dashboard statistics",
    description="Platform-wide counts for super admins; own-school counts otherwise.",
)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ok(await service.get_stats(db, principal))


@router.get(
    "/iso-analytics",
    response_model=ApiResponse[IsoAnalytics | SchoolIsoProgress],
    summary="ISO certification analytics",
    description="Every school with platform aggregates for super admins; own school otherwise.",
)
async def get_iso_analytics(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ok(await service.get_iso_analytics(db, principal))
