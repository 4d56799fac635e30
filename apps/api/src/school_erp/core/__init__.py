"""
Core module - Configuration, database, security, errors and utilities.
"""

from school_erp.core.config import get_settings, settings
from school_erp.core.database import Base, close_db, get_db, init_db
from school_erp.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidTokenError,
    InvalidTransitionError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from school_erp.core.redis import close_redis, get_redis, init_redis
from school_erp.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis",
    "init_redis",
    "close_redis",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "decode_token",
    # Errors
    "ServiceError",
    "InvalidTokenError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
    "ValidationError",
    "InternalError",
]
