"""
Database Configuration

Async SQLAlchemy engine, session factory and the declarative Base shared by
all models.
"""

import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from school_erp.core.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


def get_database_url() -> str:
    """Get properly formatted async database URL."""
    db_url = settings.database_url
    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return db_url


engine = create_async_engine(
    get_database_url(),
    echo=settings.db_echo,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields a database session.

    The session is rolled back if the request handler raises, and always closed.
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def import_models() -> None:
    """Import every model module so Base.metadata is complete."""
    from school_erp.modules.gamification import models as _gamification  # noqa: F401
    from school_erp.modules.messaging import models as _messaging  # noqa: F401
    from school_erp.modules.notifications import models as _notifications  # noqa: F401
    from school_erp.modules.registrations import models as _registrations  # noqa: F401
    from school_erp.modules.resources import models as _resources  # noqa: F401
    from school_erp.modules.schools import models as _schools  # noqa: F401
    from school_erp.modules.students import models as _students  # noqa: F401
    from school_erp.modules.users import models as _users  # noqa: F401


async def init_db() -> None:
    """
    Verify the database connection on startup.

    Creates all tables when AUTO_CREATE_TABLES is enabled (local development
    only, production schemas are managed by Alembic).
    """
    import_models()
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        if settings.auto_create_tables:
            logger.warning("AUTO_CREATE_TABLES enabled - creating missing tables")
            await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine connection pool."""
    await engine.dispose()
