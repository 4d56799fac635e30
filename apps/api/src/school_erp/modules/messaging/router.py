"""
Messaging Router

Endpoints:
- GET  /messages/users                              - Contacts the caller may message
- GET  /messages/conversations                      - Own conversations
- POST /messages/conversations                      - Start a conversation
- GET  /messages/conversations/{id}                 - One conversation (participants only)
- GET  /messages/conversations/{id}/messages        - Messages, newest page first
- POST /messages/conversations/{id}/messages        - Send a message
- PUT  /messages/conversations/{id}/read            - Reset own unread counter
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_erp.core.auth import Principal, get_current_principal
from school_erp.core.database import get_db
from school_erp.core.responses import ApiResponse, Page, ok
from school_erp.modules.messaging import service
from school_erp.modules.messaging.schemas import (
    Contact,
    ConversationCreate,
    ConversationResponse,
    MessageCreate,
    MessageResponse,
)

router = APIRouter()


@router.get(
    "/users",
    response_model=ApiResponse[list[Contact]],
    summary="Available contacts",
)
async def list_contacts(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ok(await service.list_contacts(db, principal))


@router.get(
    "/conversations",
    response_model=ApiResponse[list[ConversationResponse]],
    summary="List conversations",
)
async def list_conversations(
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ok(await service.list_conversations(db, principal))


@router.post(
    "/conversations",
    response_model=ApiResponse[ConversationResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Start a conversation",
    responses={404: {"description": "A participant is not one of your contacts"}},
)
async def create_conversation(
    data: ConversationCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    conversation = await service.create_conversation(db, principal, data)
    return ok(conversation, "Conversation created successfully.")


@router.get(
    "/conversations/{conversation_id}",
    response_model=ApiResponse[ConversationResponse],
    summary="Get a conversation",
    responses={404: {"description": "Conversation not found"}},
)
async def get_conversation(
    conversation_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    return ok(await service.get_conversation(db, principal, conversation_id))


@router.get(
    "/conversations/{conversation_id}/messages",
    response_model=ApiResponse[Page[MessageResponse]],
    summary="List messages",
    description="Pages count back from the newest message; each page is oldest first.",
)
async def list_messages(
    conversation_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    messages, total = await service.list_messages(
        db, principal, conversation_id, skip=skip, limit=limit
    )
    items = [MessageResponse.model_validate(m) for m in messages]
    return ok(Page(items=items, total=total, skip=skip, limit=limit))


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=ApiResponse[MessageResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Send a message",
)
async def send_message(
    conversation_id: UUID,
    data: MessageCreate,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    message = await service.send_message(db, principal, conversation_id, data)
    return ok(MessageResponse.model_validate(message), "Message sent.")


@router.put(
    "/conversations/{conversation_id}/read",
    response_model=ApiResponse[None],
    summary="Mark conversation as read",
)
async def mark_read(
    conversation_id: UUID,
    db: AsyncSession = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    await service.mark_read(db, principal, conversation_id)
    return ok(message="Conversation marked as read.")
