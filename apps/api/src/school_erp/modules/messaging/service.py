"""
Messaging Service Layer

Conversations between the platform and school staff.

Rules:
- Who may message whom is decided by role (see repository.contact_filter):
  school staff never reach another school's staff.
- A conversation is only visible to its active participants; to anyone
  else it does not exist.
"""

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal
from school_erp.core.errors import NotFoundError, ValidationError
from school_erp.modules.messaging import repository
from school_erp.modules.messaging.models import Conversation, ConversationParticipant, Message
from school_erp.modules.messaging.schemas import (
    Contact,
    ConversationCreate,
    ConversationResponse,
    MessageCreate,
    ParticipantResponse,
)
from school_erp.modules.shared import utcnow

logger = logging.getLogger(__name__)


async def list_contacts(db: AsyncSession, principal: Principal) -> list[Contact]:
    users = await repository.list_contacts(db, principal)
    return [
        Contact(
            id=user.id,
            name=user.full_name,
            email=user.email,
            role=user.role,
            school_id=user.school_id,
            school_name=user.school.name if user.school else None,
        )
        for user in users
    ]


async def _describe(
    db: AsyncSession,
    rows: list[tuple[Conversation, ConversationParticipant]],
) -> list[ConversationResponse]:
    participants = await repository.participants_of(db, [c.id for c, _ in rows])
    return [
        ConversationResponse(
            id=conversation.id,
            title=conversation.title,
            participants=[
                ParticipantResponse(
                    user_id=user.id,
                    name=user.full_name,
                    role=user.role,
                    school_id=user.school_id,
                    is_active=participant.is_active,
                    joined_at=participant.joined_at,
                )
                for participant, user in participants.get(conversation.id, [])
            ],
            last_message=conversation.last_message,
            last_message_at=conversation.last_message_at,
            unread_count=membership.unread_count,
            created_by=conversation.created_by,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
        )
        for conversation, membership in rows
    ]


async def _membership(
    db: AsyncSession, principal: Principal, conversation_id: UUID
) -> tuple[Conversation, ConversationParticipant]:
    membership = await repository.get_membership(db, conversation_id, principal.id)
    if membership is None:
        raise NotFoundError("Conversation", conversation_id)
    return membership


async def list_conversations(db: AsyncSession, principal: Principal) -> list[ConversationResponse]:
    return await _describe(db, await repository.list_for_user(db, principal.id))


async def get_conversation(
    db: AsyncSession, principal: Principal, conversation_id: UUID
) -> ConversationResponse:
    """
    Raises:
        NotFoundError: Missing, or the principal is not a participant
    """
    return (await _describe(db, [await _membership(db, principal, conversation_id)]))[0]


async def create_conversation(
    db: AsyncSession, principal: Principal, data: ConversationCreate
) -> ConversationResponse:
    """
    Start a conversation with one or more contacts.

    Raises:
        ValidationError: No participant besides the caller
        NotFoundError: A participant is not one of the caller's contacts
    """
    others = [user_id for user_id in data.participant_ids if user_id != principal.id]
    if not others:
        raise ValidationError("A conversation needs at least one other participant.")

    allowed = await repository.contacts_among(db, principal, others)
    for user_id in others:
        if user_id not in allowed:
            raise NotFoundError("User", user_id)

    conversation = await repository.create_conversation(
        db,
        created_by=principal.id,
        participant_ids=[principal.id, *others],
        title=data.title,
        at=utcnow(),
    )
    return await get_conversation(db, principal, conversation.id)


async def send_message(
    db: AsyncSession, principal: Principal, conversation_id: UUID, data: MessageCreate
) -> Message:
    """
    Post a message; every other participant's unread counter goes up by one.

    Raises:
        NotFoundError: Missing, or the principal is not a participant
    """
    await _membership(db, principal, conversation_id)
    message = await repository.add_message(
        db,
        conversation_id=conversation_id,
        sender_id=principal.id,
        content=data.content,
        attachments=[item.model_dump() for item in data.attachments],
        at=utcnow(),
    )
    logger.info(f"Message {message.id} posted to conversation {conversation_id} by {principal.id}")
    return message


async def list_messages(
    db: AsyncSession,
    principal: Principal,
    conversation_id: UUID,
    *,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Message], int]:
    await _membership(db, principal, conversation_id)
    return await repository.list_messages(db, conversation_id, skip=skip, limit=limit)


async def mark_read(db: AsyncSession, principal: Principal, conversation_id: UUID) -> None:
    if await repository.mark_read(db, conversation_id, principal.id, utcnow()) == 0:
        raise NotFoundError("Conversation", conversation_id)
