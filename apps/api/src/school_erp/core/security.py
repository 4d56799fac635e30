"""
Security Utilities

Password hashing (bcrypt) and session token issuance/verification (JWT via
python-jose).

Session tokens are valid for ACCESS_TOKEN_EXPIRE_DAYS (7 days). Validity is
checked twice: the signed `exp` claim, and the `iat` claim against the same
window so that a token issued exactly at the boundary is already rejected.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import JWTError, jwt

from school_erp.core.config import settings

logger = logging.getLogger(__name__)

TOKEN_TYPE_ACCESS = "access"

# bcrypt only looks at the first 72 bytes of a password
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    password_bytes = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.bcrypt_rounds))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES],
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # Malformed hash in the store
        logger.warning("Password verification against malformed hash")
        return False


def token_lifetime() -> timedelta:
    """Validity window of a session token."""
    return timedelta(days=settings.access_token_expire_days)


def is_token_expired(issued_at: datetime, now: datetime | None = None) -> bool:
    """
    Check whether a token issued at `issued_at` is outside the validity window.

    A token whose age equals the window exactly is expired.
    """
    now = now or datetime.now(UTC)
    return now - issued_at >= token_lifetime()


def create_access_token(
    subject: str,
    additional_claims: dict[str, Any] | None = None,
    issued_at: datetime | None = None,
) -> str:
    """
    Create a signed session token.

    Args:
        subject: Principal ID (stored in the `sub` claim)
        additional_claims: Snapshot claims (email, role, school_id)
        issued_at: Override the issue time (tests, token refresh)

    Returns:
        Encoded JWT string
    """
    issued_at = issued_at or datetime.now(UTC)
    payload: dict[str, Any] = {
        **(additional_claims or {}),
        "sub": subject,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + token_lifetime()).timestamp()),
        "type": TOKEN_TYPE_ACCESS,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, now: datetime | None = None) -> dict[str, Any] | None:
    """
    Decode and validate a session token.

    Returns None for malformed, tampered or expired tokens. Callers must not
    distinguish between these cases.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.debug(f"JWT decode failed: {e}")
        return None

    issued_at = payload.get("iat")
    if not isinstance(issued_at, int | float):
        return None

    if is_token_expired(datetime.fromtimestamp(issued_at, UTC), now):
        return None

    return payload
