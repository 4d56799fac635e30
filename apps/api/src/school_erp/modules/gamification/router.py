"""
Gamification Router

Endpoints:
- GET /gamification/stats - Current principal's points, level and rank
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal
from school_erp.core.database import get_db
from school_erp.core.responses import ApiResponse, ok
from school_erp.modules.gamification import service
from school_erp.modules.gamification.schemas import GamificationStats

router = APIRouter()


@router.get(
    "/stats",
    response_model=ApiResponse[GamificationStats],
    summary="Gamification statistics",
)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ok(await service.get_stats(db, principal.id))
