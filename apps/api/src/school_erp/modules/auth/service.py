"""
Authentication Service

Credential checks and session token issuance.
"""

import logging

from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.errors import ForbiddenError, ServiceError
from school_erp.core.security import create_access_token, verify_password
from school_erp.modules.gamification import service as gamification
from school_erp.modules.gamification.models import ActionType
from school_erp.modules.shared import utcnow
from school_erp.modules.users.models import User
from school_erp.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)


class InvalidCredentialsError(ServiceError):
    """Raised when the email/password pair does not match."""

    def __init__(self):
        super().__init__(
            message="Invalid email or password.",
            error_code="INVALID_CREDENTIALS",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


def issue_token(user: User) -> str:
    """
    Create a session token for a user.

    Role and school are included as a snapshot for clients only; the
    authorization guard always re-reads them from the store.
    """
    return create_access_token(
        subject=str(user.id),
        additional_claims={
            "email": user.email,
            "role": user.role.value,
            "school_id": str(user.school_id) if user.school_id else None,
            "name": user.full_name,
        },
    )


async def authenticate(db: AsyncSession, email: str, password: str) -> tuple[User, str]:
    """
    Verify credentials and open a session.

    Args:
        db: Database session
        email: Login email (case-insensitive)
        password: Plain password

    Returns:
        Tuple of (user, session token)

    Raises:
        InvalidCredentialsError: Unknown email or wrong password
        ForbiddenError: Account or school deactivated
    """
    user = await UserRepository.get_by_email(db, email)

    if user is None:
        logger.warning(f"Login attempt for non-existent email: {email}")
        raise InvalidCredentialsError()

    if not verify_password(password, user.password_hash):
        logger.warning(f"Invalid password for user: {email}")
        raise InvalidCredentialsError()

    if not user.is_active:
        logger.warning(f"Login attempt for inactive account: {email}")
        raise ForbiddenError("Your account has been deactivated.")

    if not user.role.is_global and (user.school is None or not user.school.is_active):
        logger.warning(f"Login attempt for user of inactive school: {email}")
        raise ForbiddenError("Your school account is not active.")

    user = await UserRepository.update(db, user, last_login_at=utcnow())
    user_id = user.id
    token = issue_token(user)
    logger.info(f"User logged in: {user.email} (role: {user.role.value})")

    await gamification.record_action(db, user_id, ActionType.DAILY_LOGIN)

    # Side channels may roll the session back; return the stored row
    return await UserRepository.get_by_id(db, user_id), token
