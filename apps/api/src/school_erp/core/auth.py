"""
Authentication and Authorization Module

Provides the authorization guard and its FastAPI dependencies.

The session token is read from the `auth-token` cookie, with an
`Authorization: Bearer` header accepted as a fallback for API clients. The
token only identifies the principal: role, tenant and active flags are
re-read from the store on every request, so a deactivated principal (or a
principal of a deactivated school) loses access immediately even while the
token itself is still valid.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.config import settings
from school_erp.core.database import get_db
from school_erp.core.errors import ForbiddenError, InvalidTokenError
from school_erp.core.security import TOKEN_TYPE_ACCESS, decode_token
from school_erp.modules.users.models import UserRole
from school_erp.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

# Security schemes for OpenAPI documentation
cookie_scheme = APIKeyCookie(
    name=settings.auth_cookie_name,
    auto_error=False,
    description="HTTP-only session cookie set by /auth/login",
)
bearer_scheme = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token (fallback for API clients)",
)


@dataclass(frozen=True)
class Principal:
    """
    The authenticated user of a request.

    Built from the store, never from token claims.

    Attributes:
        id: User's unique identifier
        email: User's email address
        role: User's current role
        tenant_id: School the user belongs to (None for super admins)
        name: User's display name
    """

    id: UUID
    email: str
    role: UserRole
    tenant_id: UUID | None = None
    name: str | None = None

    @property
    def is_global(self) -> bool:
        return self.role.is_global

    def __str__(self) -> str:
        return f"Principal(id={self.id}, email={self.email}, role={self.role.value})"


def ensure_role(principal: Principal, allowed_roles: Iterable[UserRole]) -> None:
    """
    Assert the principal holds one of the allowed roles.

    An empty set of roles allows any authenticated principal.

    Raises:
        ForbiddenError: If the role is not allowed
    """
    allowed = frozenset(allowed_roles)
    if allowed and principal.role not in allowed:
        logger.warning(
            f"Access denied: {principal} requires one of "
            f"{sorted(role.value for role in allowed)}"
        )
        raise ForbiddenError()


async def authorize(
    db: AsyncSession,
    token: str | None,
    required_roles: Iterable[UserRole] = (),
) -> Principal:
    """
    Validate a session token and resolve the current principal.

    Args:
        db: Database session
        token: Raw session token (cookie or bearer)
        required_roles: Roles allowed to proceed (empty = any principal)

    Returns:
        Principal loaded from the store

    Raises:
        InvalidTokenError: Token missing, malformed, tampered or expired, or
            the user no longer exists
        ForbiddenError: User or school inactive, or role not allowed
    """
    if not token:
        raise InvalidTokenError("Authentication required.")

    payload = decode_token(token)
    if payload is None or payload.get("type", TOKEN_TYPE_ACCESS) != TOKEN_TYPE_ACCESS:
        logger.warning("Rejected invalid or expired session token")
        raise InvalidTokenError()

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError as e:
        logger.warning(f"Invalid token subject: {e}")
        raise InvalidTokenError() from e

    user = await UserRepository.get_by_id(db, user_id)
    if user is None:
        logger.warning(f"Token subject {user_id} no longer exists")
        raise InvalidTokenError()

    if not user.is_active:
        logger.warning(f"Access denied: user {user.id} is deactivated")
        raise ForbiddenError("Your account has been deactivated.")

    if not user.role.is_global:
        school = user.school
        if user.school_id is None or school is None or not school.is_active:
            logger.warning(f"Access denied: school of user {user.id} is not active")
            raise ForbiddenError("Your school account is not active.")

    principal = Principal(
        id=user.id,
        email=user.email,
        role=user.role,
        tenant_id=None if user.role.is_global else user.school_id,
        name=user.full_name,
    )
    ensure_role(principal, required_roles)

    logger.debug(f"Authenticated {principal}")
    return principal


def extract_token(
    cookie_token: str | None,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """Pick the session token: cookie first, then bearer header."""
    if cookie_token:
        return cookie_token
    if credentials:
        return credentials.credentials
    return None


async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
    cookie_token: str | None = Depends(cookie_scheme),
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    """
    FastAPI dependency returning the authenticated principal.

    Usage:
        @router.get("/endpoint")
        async def endpoint(principal: Principal = Depends(get_current_principal)):
            ...

    Raises:
        InvalidTokenError: 401
        ForbiddenError: 403
    """
    principal = await authorize(db, extract_token(cookie_token, credentials))
    # Used by the rate limiter to key per principal
    request.state.principal_id = principal.id
    return principal


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[Principal]]:
    """
    Build a dependency that only admits the given roles.

    Usage:
        @router.post("/schools")
        async def create_school(
            principal: Principal = Depends(require_roles(UserRole.SUPER_ADMIN)),
        ):
            ...
    """
    allowed = frozenset(roles)

    async def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        ensure_role(principal, allowed)
        return principal

    return dependency


require_super_admin = require_roles(UserRole.SUPER_ADMIN)


__all__ = [
    "Principal",
    "authorize",
    "ensure_role",
    "extract_token",
    "get_current_principal",
    "require_roles",
    "require_super_admin",
]
