"""
Tests for the authorization guard.

The token only identifies the principal; role, tenant and active flags are
always taken from the store.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from school_erp.core.auth import Principal, authorize, ensure_role, extract_token
from school_erp.core.errors import ForbiddenError, InvalidTokenError
from school_erp.core.security import create_access_token
from school_erp.modules.users.models import User, UserRole


def _user(role=UserRole.SCHOOL_ADMIN, is_active=True, school_active=True, school_id=None):
    user = MagicMock(spec=User)
    user.id = uuid4()
    user.email = "someone@school.test"
    user.full_name = "Some One"
    user.role = role
    user.is_active = is_active
    if role.is_global:
        user.school_id = None
        user.school = None
    else:
        user.school_id = school_id or uuid4()
        user.school = MagicMock(is_active=school_active)
    return user


def _token_for(user, **claims) -> str:
    return create_access_token(str(user.id), claims)


@pytest.mark.asyncio
async def test_missing_token_is_invalid(mock_db):
    with pytest.raises(InvalidTokenError):
        await authorize(mock_db, None)


@pytest.mark.asyncio
async def test_garbage_token_is_invalid(mock_db):
    with pytest.raises(InvalidTokenError):
        await authorize(mock_db, "garbage")


@pytest.mark.asyncio
async def test_non_uuid_subject_is_invalid(mock_db):
    token = create_access_token("not-a-uuid")
    with pytest.raises(InvalidTokenError):
        await authorize(mock_db, token)


@pytest.mark.asyncio
async def test_unknown_user_is_invalid(mock_db):
    user = _user()
    with patch("school_erp.core.auth.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(InvalidTokenError):
            await authorize(mock_db, _token_for(user))


@pytest.mark.asyncio
async def test_deactivated_user_is_forbidden(mock_db):
    user = _user(is_active=False)
    with patch("school_erp.core.auth.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=user)

        with pytest.raises(ForbiddenError) as exc_info:
            await authorize(mock_db, _token_for(user))

    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_inactive_school_is_forbidden(mock_db):
    user = _user(school_active=False)
    with patch("school_erp.core.auth.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=user)

        with pytest.raises(ForbiddenError):
            await authorize(mock_db, _token_for(user))


@pytest.mark.asyncio
async def test_school_principal_resolves_tenant(mock_db, school_a_id):
    user = _user(role=UserRole.ECA_COORDINATOR, school_id=school_a_id)
    with patch("school_erp.core.auth.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=user)

        principal = await authorize(mock_db, _token_for(user))

    assert principal.id == user.id
    assert principal.role == UserRole.ECA_COORDINATOR
    assert principal.tenant_id == school_a_id
    assert not principal.is_global


@pytest.mark.asyncio
async def test_super_admin_has_no_tenant(mock_db):
    user = _user(role=UserRole.SUPER_ADMIN)
    with patch("school_erp.core.auth.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=user)

        principal = await authorize(mock_db, _token_for(user), [UserRole.SUPER_ADMIN])

    assert principal.is_global
    assert principal.tenant_id is None


@pytest.mark.asyncio
async def test_role_claim_in_token_is_ignored(mock_db):
    """A stale super_admin claim does not grant super admin access."""
    user = _user(role=UserRole.SCHOOL_ADMIN)
    token = _token_for(user, role=UserRole.SUPER_ADMIN.value)
    with patch("school_erp.core.auth.UserRepository") as mock_repo:
        mock_repo.get_by_id = AsyncMock(return_value=user)

        with pytest.raises(ForbiddenError):
            await authorize(mock_db, token, [UserRole.SUPER_ADMIN])


class TestEnsureRole:
    def test_empty_roles_allow_anyone(self, school_admin):
        ensure_role(school_admin, ())

    def test_allowed_role_passes(self, school_admin):
        ensure_role(school_admin, {UserRole.SCHOOL_ADMIN, UserRole.SUPER_ADMIN})

    def test_other_role_is_forbidden(self, coordinator):
        with pytest.raises(ForbiddenError):
            ensure_role(coordinator, {UserRole.SCHOOL_ADMIN})


class TestExtractToken:
    def test_cookie_wins_over_bearer(self):
        credentials = MagicMock(credentials="from-header")
        assert extract_token("from-cookie", credentials) == "from-cookie"

    def test_bearer_fallback(self):
        credentials = MagicMock(credentials="from-header")
        assert extract_token(None, credentials) == "from-header"

    def test_nothing(self):
        assert extract_token(None, None) is None


def test_principal_is_immutable(super_admin):
    with pytest.raises(AttributeError):
        super_admin.role = UserRole.SCHOOL_ADMIN  # type: ignore[misc]
    assert isinstance(super_admin, Principal)
