"""
Messaging Repository

Database operations for conversations and messages. Reads and writes of a
conversation go through the caller's active membership, so a non-member
never sees or touches it.
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from school_erp.core.auth import Principal
from school_erp.modules.messaging.models import Conversation, ConversationParticipant, Message
from school_erp.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


# ============================================
# Contacts
# ============================================


def contact_filter(principal: Principal) -> ColumnElement[bool]:
    """
    Users the principal may message.

    - Super admins: school admins and ECA coordinators of every school
    - School admins: super admins and their own school's ECA coordinators
    - ECA coordinators: super admins and their own school's admins
    """
    if principal.is_global:
        scope = User.role.in_([UserRole.SCHOOL_ADMIN, UserRole.ECA_COORDINATOR])
    else:
        colleague_role = (
            UserRole.ECA_COORDINATOR
            if principal.role == UserRole.SCHOOL_ADMIN
            else UserRole.SCHOOL_ADMIN
        )
        scope = or_(
            User.role == UserRole.SUPER_ADMIN,
            and_(User.role == colleague_role, User.school_id == principal.tenant_id),
        )
    return and_(scope, User.is_active.is_(True), User.id != principal.id)


async def list_contacts(db: AsyncSession, principal: Principal) -> list[User]:
    result = await db.execute(
        select(User).where(contact_filter(principal)).order_by(User.first_name, User.last_name)
    )
    return list(result.scalars().all())


async def contacts_among(
    db: AsyncSession, principal: Principal, user_ids: list[UUID]
) -> set[UUID]:
    """The subset of `user_ids` the principal may message."""
    result = await db.execute(
        select(User.id).where(User.id.in_(user_ids), contact_filter(principal))
    )
    return set(result.scalars().all())


# ============================================
# Conversations
# ============================================


async def create_conversation(
    db: AsyncSession,
    *,
    created_by: UUID,
    participant_ids: list[UUID],
    title: str | None,
    at: datetime,
) -> Conversation:
    """Insert a conversation and its participants in one commit."""
    conversation = Conversation(title=title, created_by=created_by)
    db.add(conversation)
    await db.flush()

    db.add_all(
        ConversationParticipant(conversation_id=conversation.id, user_id=user_id, joined_at=at)
        for user_id in participant_ids
    )
    await db.commit()
    await db.refresh(conversation)

    logger.info(
        f"Created conversation {conversation.id} by {created_by} "
        f"with {len(participant_ids)} participant(s)"
    )
    return conversation


async def get_membership(
    db: AsyncSession, conversation_id: UUID, user_id: UUID
) -> tuple[Conversation, ConversationParticipant] | None:
    """The conversation and the user's active membership, if any."""
    result = await db.execute(
        select(Conversation, ConversationParticipant)
        .join(
            ConversationParticipant,
            ConversationParticipant.conversation_id == Conversation.id,
        )
        .where(
            Conversation.id == conversation_id,
            ConversationParticipant.user_id == user_id,
            ConversationParticipant.is_active.is_(True),
        )
        .execution_options(populate_existing=True)
    )
    row = result.first()
    return (row[0], row[1]) if row else None


async def list_for_user(
    db: AsyncSession, user_id: UUID
) -> list[tuple[Conversation, ConversationParticipant]]:
    """The user's conversations, most recent activity first."""
    result = await db.execute(
        select(Conversation, ConversationParticipant)
        .join(
            ConversationParticipant,
            ConversationParticipant.conversation_id == Conversation.id,
        )
        .where(
            ConversationParticipant.user_id == user_id,
            ConversationParticipant.is_active.is_(True),
        )
        .order_by(func.coalesce(Conversation.last_message_at, Conversation.created_at).desc())
    )
    return [(conversation, membership) for conversation, membership in result.all()]


async def participants_of(
    db: AsyncSession, conversation_ids: list[UUID]
) -> dict[UUID, list[tuple[ConversationParticipant, User]]]:
    """Participants (with their user) of each conversation."""
    if not conversation_ids:
        return {}
    result = await db.execute(
        select(ConversationParticipant, User)
        .join(User, User.id == ConversationParticipant.user_id)
        .where(ConversationParticipant.conversation_id.in_(conversation_ids))
        .order_by(ConversationParticipant.joined_at, User.first_name)
    )
    grouped: dict[UUID, list[tuple[ConversationParticipant, User]]] = {}
    for participant, user in result.all():
        grouped.setdefault(participant.conversation_id, []).append((participant, user))
    return grouped


async def mark_read(db: AsyncSession, conversation_id: UUID, user_id: UUID, at: datetime) -> int:
    """Reset the user's unread counter. Returns rows updated (0 = not a member)."""
    result = await db.execute(
        update(ConversationParticipant)
        .where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == user_id,
            ConversationParticipant.is_active.is_(True),
        )
        .values(unread_count=0, last_read_at=at)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount


# ============================================
# Messages
# ============================================


async def add_message(
    db: AsyncSession,
    *,
    conversation_id: UUID,
    sender_id: UUID,
    content: str,
    attachments: list[dict],
    at: datetime,
) -> Message:
    """
    Insert a message, update the conversation preview and bump every other
    active participant's unread counter, in one commit.
    """
    message = Message(
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        attachments=attachments,
    )
    db.add(message)

    await db.execute(
        update(Conversation)
        .where(Conversation.id == conversation_id)
        .values(last_message=content, last_message_at=at)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(ConversationParticipant)
        .where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id != sender_id,
            ConversationParticipant.is_active.is_(True),
        )
        .values(unread_count=ConversationParticipant.unread_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(ConversationParticipant)
        .where(
            ConversationParticipant.conversation_id == conversation_id,
            ConversationParticipant.user_id == sender_id,
        )
        .values(last_read_at=at)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(message)
    return message


async def list_messages(
    db: AsyncSession,
    conversation_id: UUID,
    *,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[Message], int]:
    """
    A page of messages counted from the newest, returned oldest first.

    Returns:
        Tuple of (messages, total count)
    """
    total = await db.scalar(
        select(func.count()).select_from(Message).where(Message.conversation_id == conversation_id)
    )
    result = await db.execute(
        select(Message)
        .where(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .offset(skip)
        .limit(limit)
    )
    messages = list(result.scalars().all())
    messages.reverse()
    return messages, total or 0
