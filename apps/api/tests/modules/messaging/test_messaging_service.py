"""
Tests for messaging.

These tests verify:
- Who may message whom, by role and school
- Non-participants cannot see or post to a conversation
- The caller always joins the conversation they start
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.dialects import postgresql

from school_erp.core.errors import NotFoundError, ValidationError
from school_erp.modules.messaging.repository import contact_filter
from school_erp.modules.messaging.schemas import ConversationCreate, MessageCreate
from school_erp.modules.messaging.service import (
    create_conversation,
    get_conversation,
    list_messages,
    mark_read,
    send_message,
)

SERVICE = "school_erp.modules.messaging.service"


@pytest.fixture
def mock_repo():
    with patch(f"{SERVICE}.repository") as repo:
        repo.contacts_among = AsyncMock(return_value=set())
        repo.create_conversation = AsyncMock()
        repo.get_membership = AsyncMock(return_value=None)
        repo.participants_of = AsyncMock(return_value={})
        repo.add_message = AsyncMock()
        repo.list_messages = AsyncMock(return_value=([], 0))
        repo.mark_read = AsyncMock(return_value=0)
        yield repo


def _compiled(principal) -> str:
    return str(
        contact_filter(principal).compile(
            dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}
        )
    )


# ============================================
# Contacts
# ============================================


def test_super_admin_contacts_are_school_staff(super_admin):
    sql = _compiled(super_admin)

    assert "'school_admin'" in sql
    assert "'eca_coordinator'" in sql
    assert "school_id" not in sql


def test_school_admin_contacts_are_platform_and_own_coordinators(school_admin):
    sql = _compiled(school_admin)

    assert "'super_admin'" in sql
    assert "'eca_coordinator'" in sql
    assert "'school_admin'" not in sql
    assert "users.school_id" in sql


def test_coordinator_contacts_are_platform_and_own_admins(coordinator):
    sql = _compiled(coordinator)

    assert "'super_admin'" in sql
    assert "'school_admin'" in sql
    assert "'eca_coordinator'" not in sql
    assert "users.school_id" in sql


# ============================================
# Conversations
# ============================================


@pytest.mark.asyncio
async def test_conversation_with_only_self_is_invalid(mock_db, mock_repo, school_admin):
    with pytest.raises(ValidationError):
        await create_conversation(
            mock_db, school_admin, ConversationCreate(participant_ids=[school_admin.id])
        )

    mock_repo.create_conversation.assert_not_called()


@pytest.mark.asyncio
async def test_non_contact_participant_is_not_found(mock_db, mock_repo, school_admin):
    allowed, foreign = uuid4(), uuid4()
    mock_repo.contacts_among.return_value = {allowed}

    with pytest.raises(NotFoundError):
        await create_conversation(
            mock_db, school_admin, ConversationCreate(participant_ids=[allowed, foreign])
        )

    mock_repo.create_conversation.assert_not_called()


@pytest.mark.asyncio
async def test_creator_joins_conversation(mock_db, mock_repo, school_admin):
    other = uuid4()
    mock_repo.contacts_among.return_value = {other}
    conversation = MagicMock(id=uuid4())
    mock_repo.create_conversation.return_value = conversation
    mock_repo.get_membership.return_value = (conversation, MagicMock(unread_count=0))

    with patch(f"{SERVICE}._describe", AsyncMock(return_value=["described"])):
        result = await create_conversation(
            mock_db, school_admin, ConversationCreate(participant_ids=[other], title="Hi")
        )

    assert result == "described"
    kwargs = mock_repo.create_conversation.call_args.kwargs
    assert kwargs["participant_ids"] == [school_admin.id, other]
    assert kwargs["created_by"] == school_admin.id


@pytest.mark.asyncio
async def test_non_participant_cannot_read_conversation(mock_db, mock_repo, school_admin):
    with pytest.raises(NotFoundError):
        await get_conversation(mock_db, school_admin, uuid4())


# ============================================
# Messages
# ============================================


@pytest.mark.asyncio
async def test_non_participant_cannot_post(mock_db, mock_repo, coordinator):
    with pytest.raises(NotFoundError):
        await send_message(mock_db, coordinator, uuid4(), MessageCreate(content="Hello"))

    mock_repo.add_message.assert_not_called()


@pytest.mark.asyncio
async def test_non_participant_cannot_list_messages(mock_db, mock_repo, coordinator):
    with pytest.raises(NotFoundError):
        await list_messages(mock_db, coordinator, uuid4())

    mock_repo.list_messages.assert_not_called()


@pytest.mark.asyncio
async def test_participant_posts_message(mock_db, mock_repo, coordinator):
    conversation_id = uuid4()
    mock_repo.get_membership.return_value = (MagicMock(), MagicMock())
    mock_repo.add_message.return_value = MagicMock(id=uuid4())

    await send_message(mock_db, coordinator, conversation_id, MessageCreate(content="Hello"))

    kwargs = mock_repo.add_message.call_args.kwargs
    assert kwargs["conversation_id"] == conversation_id
    assert kwargs["sender_id"] == coordinator.id
    assert kwargs["attachments"] == []


@pytest.mark.asyncio
async def test_mark_read_outside_conversation_is_not_found(mock_db, mock_repo, coordinator):
    with pytest.raises(NotFoundError):
        await mark_read(mock_db, coordinator, uuid4())


def test_blank_message_is_rejected():
    with pytest.raises(SchemaValidationError):
        MessageCreate(content="   ")
