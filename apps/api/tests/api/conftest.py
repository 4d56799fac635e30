"""
HTTP-level fixtures.

Runs the real application against an in-memory SQLite database. Every
request gets its own session, the same way production requests do.
"""

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from school_erp.core.database import Base, get_db, import_models
from school_erp.core.security import create_access_token, hash_password
from school_erp.main import app
from school_erp.modules.schools.models import School
from school_erp.modules.users.models import User, UserRole


@pytest_asyncio.fixture
async def session_maker() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    import_models()
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def seeded(session_maker) -> dict:
    """Two schools, an admin for each, a coordinator of school A and a super admin."""
    async with session_maker() as db:
        school_a = School(name="School A", email="a@school.test")
        school_b = School(name="School B", email="b@school.test")
        db.add_all([school_a, school_b])
        await db.flush()

        def user(email: str, role: UserRole, school: School | None) -> User:
            return User(
                email=email,
                password_hash=hash_password("correct-horse-battery"),
                first_name=email.split("@")[0],
                last_name="Test",
                role=role,
                school_id=school.id if school else None,
            )

        users = {
            "super": user("root@platform.test", UserRole.SUPER_ADMIN, None),
            "admin_a": user("admin@a.test", UserRole.SCHOOL_ADMIN, school_a),
            "coordinator_a": user("eca@a.test", UserRole.ECA_COORDINATOR, school_a),
            "admin_b": user("admin@b.test", UserRole.SCHOOL_ADMIN, school_b),
        }
        db.add_all(users.values())
        await db.commit()

        return {
            "school_a": school_a.id,
            "school_b": school_b.id,
            **{key: u.id for key, u in users.items()},
        }


@pytest_asyncio.fixture
async def headers(seeded) -> dict[str, dict[str, str]]:
    """Bearer headers keyed like `seeded` users."""
    return {
        key: {"Authorization": f"Bearer {create_access_token(subject=str(seeded[key]))}"}
        for key in ("super", "admin_a", "coordinator_a", "admin_b")
    }
