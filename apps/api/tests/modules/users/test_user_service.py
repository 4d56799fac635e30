"""
Tests for user management.

These tests verify:
- Role/school assignment rules
- Duplicate email handling
- Self-deactivation guard
- Password change
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from school_erp.core.errors import ConflictError, ValidationError
from school_erp.core.security import hash_password
from school_erp.modules.users.models import UserRole
from school_erp.modules.users.schemas import PasswordChange, UserCreate, UserUpdate
from school_erp.modules.users.service import (
    change_password,
    create_user,
    toggle_user_status,
    update_user,
)

SERVICE = "school_erp.modules.users.service"


def _create_payload(**overrides) -> UserCreate:
    fields = {
        "email": "New.Admin@Example.com",
        "password": "a-strong-password",
        "first_name": "New",
        "last_name": "Admin",
        "role": "school_admin",
    }
    fields.update(overrides)
    return UserCreate(**fields)


@pytest.fixture
def mock_users():
    with patch(f"{SERVICE}.UserRepository") as repo:
        repo.get_by_id = AsyncMock()
        repo.email_exists = AsyncMock(return_value=False)
        repo.create = AsyncMock()
        repo.update = AsyncMock()
        yield repo


@pytest.fixture
def mock_schools():
    with patch(f"{SERVICE}.SchoolRepository") as repo:
        repo.get_by_id = AsyncMock()
        yield repo


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_school_role_requires_school(self, mock_db, mock_users, mock_schools):
        with pytest.raises(ValidationError) as exc_info:
            await create_user(mock_db, _create_payload())

        assert "school is required" in exc_info.value.message
        mock_users.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_school_rejected(self, mock_db, mock_users, mock_schools):
        mock_schools.get_by_id.return_value = None

        with pytest.raises(ValidationError):
            await create_user(mock_db, _create_payload(school_id=uuid4()))

    @pytest.mark.asyncio
    async def test_duplicate_email_conflict(
        self, mock_db, mock_users, mock_schools, school_a_id
    ):
        mock_schools.get_by_id.return_value = MagicMock(id=school_a_id)
        mock_users.email_exists.return_value = True

        with pytest.raises(ConflictError) as exc_info:
            await create_user(mock_db, _create_payload(school_id=school_a_id))

        assert exc_info.value.status_code == 400
        mock_users.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_creates_school_admin_and_sends_welcome(
        self, mock_db, mock_users, mock_schools, school_a_id
    ):
        mock_schools.get_by_id.return_value = MagicMock(id=school_a_id)
        created = MagicMock(
            email="new.admin@example.com",
            full_name="New Admin",
            role=UserRole.SCHOOL_ADMIN,
        )
        created.school.name = "School A"
        mock_users.create.return_value = created

        with patch(f"{SERVICE}.send_account_created", AsyncMock()) as mock_send:
            user = await create_user(mock_db, _create_payload(school_id=school_a_id))

        assert user is created
        kwargs = mock_users.create.call_args.kwargs
        assert kwargs["email"] == "new.admin@example.com"
        assert kwargs["school_id"] == school_a_id
        assert kwargs["password_hash"] != "a-strong-password"
        mock_send.assert_awaited_once()
        assert mock_send.call_args.kwargs["school_name"] == "School A"

    @pytest.mark.asyncio
    async def test_super_admin_never_bound_to_school(
        self, mock_db, mock_users, mock_schools, school_a_id
    ):
        created = MagicMock(role=UserRole.SUPER_ADMIN, school=None)
        mock_users.create.return_value = created

        with patch(f"{SERVICE}.send_account_created", AsyncMock()):
            await create_user(
                mock_db, _create_payload(role="super_admin", school_id=school_a_id)
            )

        assert mock_users.create.call_args.kwargs["school_id"] is None
        mock_schools.get_by_id.assert_not_called()

    def test_legacy_role_spelling_accepted(self):
        payload = _create_payload(role="eca-coordinator")

        assert payload.role == UserRole.ECA_COORDINATOR


class TestUpdateUser:
    @pytest.mark.asyncio
    async def test_role_change_to_school_role_needs_school(
        self, mock_db, mock_users, mock_schools
    ):
        mock_users.get_by_id.return_value = MagicMock(
            role=UserRole.SUPER_ADMIN, school_id=None
        )

        with pytest.raises(ValidationError):
            await update_user(mock_db, uuid4(), UserUpdate(role="school_admin"))

        mock_users.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_name_only_update(self, mock_db, mock_users, mock_schools):
        user = MagicMock()
        mock_users.get_by_id.return_value = user

        await update_user(mock_db, uuid4(), UserUpdate(first_name="Renamed"))

        mock_users.update.assert_awaited_once_with(mock_db, user, first_name="Renamed")


class TestToggleStatus:
    @pytest.mark.asyncio
    async def test_cannot_toggle_self(self, mock_db, mock_users, super_admin):
        mock_users.get_by_id.return_value = MagicMock(id=super_admin.id)

        with pytest.raises(ValidationError):
            await toggle_user_status(mock_db, super_admin, super_admin.id)

        mock_users.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_deactivates_active_user(self, mock_db, mock_users, super_admin):
        user = MagicMock(id=uuid4(), is_active=True)
        mock_users.get_by_id.return_value = user
        mock_users.update.return_value = MagicMock(id=user.id, is_active=False)

        result = await toggle_user_status(mock_db, super_admin, user.id)

        assert result.is_active is False
        mock_users.update.assert_awaited_once_with(mock_db, user, is_active=False)


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_wrong_current_password(self, mock_db, mock_users, school_admin):
        mock_users.get_by_id.return_value = MagicMock(
            id=school_admin.id, password_hash=hash_password("the-real-password")
        )

        with pytest.raises(ValidationError) as exc_info:
            await change_password(
                mock_db,
                school_admin,
                PasswordChange(current_password="guess", new_password="another-password"),
            )

        assert exc_info.value.message == "Current password is incorrect."
        mock_users.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_changes_password(self, mock_db, mock_users, school_admin):
        user = MagicMock(id=school_admin.id, password_hash=hash_password("the-real-password"))
        mock_users.get_by_id.return_value = user

        await change_password(
            mock_db,
            school_admin,
            PasswordChange(current_password="the-real-password", new_password="another-password"),
        )

        new_hash = mock_users.update.call_args.kwargs["password_hash"]
        assert new_hash != user.password_hash
