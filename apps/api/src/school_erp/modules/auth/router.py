"""
Authentication Router

Endpoints:
- POST /auth/login  - Verify credentials, set session cookies
- POST /auth/logout - Clear session cookies
- GET  /auth/me     - Current principal, re-read from the store
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal
from school_erp.core.config import settings
from school_erp.core.database import get_db
from school_erp.core.rate_limit import rate_limit
from school_erp.core.responses import ApiResponse, ok
from school_erp.modules.auth import service
from school_erp.modules.auth.schemas import LoginData, LoginRequest, SessionData
from school_erp.modules.schools.schemas import SchoolResponse
from school_erp.modules.users.models import User
from school_erp.modules.users.repository import UserRepository
from school_erp.modules.users.schemas import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _set_session_cookies(response: Response, token: str) -> None:
    max_age = settings.access_token_max_age_seconds
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )
    # Readable by the client for UI checks
    response.set_cookie(
        key=settings.auth_flag_cookie_name,
        value="true",
        max_age=max_age,
        httponly=False,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(settings.auth_cookie_name, path="/")
    response.delete_cookie(settings.auth_flag_cookie_name, path="/")


def _session_data(user: User) -> dict:
    return {
        "user": UserResponse.model_validate(user),
        "school": SchoolResponse.model_validate(user.school) if user.school else None,
    }


@router.post(
    "/login",
    response_model=ApiResponse[LoginData],
    summary="Log in",
    responses={
        401: {"description": "Invalid email or password"},
        403: {"description": "Account or school deactivated"},
        429: {"description": "Too many login attempts"},
    },
)
@rate_limit(
    limit=lambda: settings.login_rate_limit,
    window_seconds=lambda: settings.login_rate_window_seconds,
)
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate a user and open a session.

    Sets the HTTP-only `auth-token` cookie and the client-readable
    `isAuthenticated` flag cookie, both valid for the token lifetime.
    """
    user, token = await service.authenticate(db, credentials.email, credentials.password)
    _set_session_cookies(response, token)
    return ok(LoginData(**_session_data(user), access_token=token), "Login successful.")


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    summary="Log out",
)
async def logout(response: Response):
    """Clear the session cookies. Works without a valid session."""
    _clear_session_cookies(response)
    return ok(message="Logged out successfully.")


@router.get(
    "/me",
    response_model=ApiResponse[SessionData],
    summary="Current user",
)
async def me(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    user = await UserRepository.get_by_id(db, principal.id)
    return ok(SessionData(**_session_data(user)))
