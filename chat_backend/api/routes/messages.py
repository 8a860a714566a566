"""
api/routes/messages.py
----------------------
Messaging endpoints.

POST /messages            — Send a message, get the AI reply (both stored)
GET  /messages/{chat_id}  — All messages of a chat, oldest first

Callers are either registered users (Bearer token) or guests (guest_id in
the body for POST, in the query string for GET). When both are supplied
the token wins. Domain errors are rendered by the handler in main.py.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.db.session import get_db
from chat_backend.dependencies import get_optional_user, user_id_of
from chat_backend.models.user import User
from chat_backend.schemas.message import MessageCreate, MessageRead, SendMessageResponse
from chat_backend.services.conversation_service import (
    ConversationService,
    SendMessageCommand,
)
from chat_backend.services.llm_service import LLMService, get_llm_service

router = APIRouter(tags=["Messages"])


@router.post(
    "/messages",
    response_model=SendMessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message and receive the AI reply",
)
async def send_message(
    body: MessageCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    llm: Annotated[LLMService, Depends(get_llm_service)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
) -> SendMessageResponse:
    """
    Store the user's message, generate the reply and store it too.

    chat_title is set only on the chat's first reply, when the chat is
    automatically retitled. If the reply cannot be generated the user's
    message is still saved; the error body names the failing step.
    """
    service = ConversationService(db, llm)
    result = await service.send_message(
        SendMessageCommand(
            content=body.content,
            chat_id=body.chat_id,
            user_id=user_id_of(current_user),
            guest_id=body.guest_id,
        )
    )
    return SendMessageResponse(
        user_message=MessageRead.model_validate(result.user_message),
        ai_message=MessageRead.model_validate(result.ai_message),
        chat_title=result.chat_title,
    )


@router.get(
    "/messages/{chat_id}",
    response_model=list[MessageRead],
    summary="List the messages of a chat",
)
async def list_messages(
    chat_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    guest_id: Optional[str] = Query(default=None, max_length=128),
) -> list[MessageRead]:
    service = ConversationService(db)
    messages = await service.list_messages(
        chat_id,
        user_id=user_id_of(current_user),
        guest_id=guest_id,
    )
    return [MessageRead.model_validate(m) for m in messages]
