"""
Shared fixtures for unit tests.
"""

from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from school_erp.core.auth import Principal
from school_erp.modules.users.models import UserRole

SCHOOL_A = UUID("00000000-0000-0000-0000-00000000000a")
SCHOOL_B = UUID("00000000-0000-0000-0000-00000000000b")


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.scalar = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def super_admin():
    """A global principal."""
    return Principal(
        id=UUID("00000000-0000-0000-0000-000000000001"),
        email="root@platform.test",
        role=UserRole.SUPER_ADMIN,
    )


@pytest.fixture
def school_admin():
    """A school admin of school A."""
    return Principal(
        id=uuid4(),
        email="admin@school-a.test",
        role=UserRole.SCHOOL_ADMIN,
        tenant_id=SCHOOL_A,
    )


@pytest.fixture
def coordinator():
    """An ECA coordinator of school A."""
    return Principal(
        id=uuid4(),
        email="eca@school-a.test",
        role=UserRole.ECA_COORDINATOR,
        tenant_id=SCHOOL_A,
    )


@pytest.fixture
def other_school_admin():
    """A school admin of school B."""
    return Principal(
        id=uuid4(),
        email="admin@school-b.test",
        role=UserRole.SCHOOL_ADMIN,
        tenant_id=SCHOOL_B,
    )


@pytest.fixture
def school_a_id():
    return SCHOOL_A


@pytest.fixture
def school_b_id():
    return SCHOOL_B
