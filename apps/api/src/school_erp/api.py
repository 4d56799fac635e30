from fastapi import APIRouter

from school_erp.modules.auth.router import router as auth_router
from school_erp.modules.dashboard.router import router as dashboard_router
from school_erp.modules.gamification.router import router as gamification_router
from school_erp.modules.messaging.router import router as messaging_router
from school_erp.modules.notifications.router import router as notifications_router
from school_erp.modules.resources.router import router as resources_router
from school_erp.modules.schools.router import router as schools_router
from school_erp.modules.users.router import profile_router
from school_erp.modules.users.router import router as users_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(profile_router, prefix="/profile", tags=["Profile"])

api_router.include_router(users_router, prefix="/users", tags=["Admin - Users"])

api_router.include_router(schools_router, prefix="/schools", tags=["Admin - Schools"])

api_router.include_router(resources_router, prefix="/resources")

api_router.include_router(
    notifications_router, prefix="/notifications", tags=["Notifications"]
)

api_router.include_router(messaging_router, prefix="/messages", tags=["Messaging"])

api_router.include_router(gamification_router, prefix="/gamification", tags=["Gamification"])

api_router.include_router(dashboard_router, prefix="/dashboard", tags=["Dashboard"])
