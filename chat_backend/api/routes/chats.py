"""
api/routes/chats.py
-------------------
Chat management endpoints, scoped to the caller (user or guest).

POST   /chats             — Create a chat
GET    /chats             — List the caller's chats, newest activity first
GET    /chats/{chat_id}   — Get one chat
PUT    /chats/{chat_id}   — Rename a chat
DELETE /chats/{chat_id}   — Delete a chat and all of its messages
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.db.session import get_db
from chat_backend.dependencies import get_optional_user, user_id_of
from chat_backend.models.user import User
from chat_backend.schemas.chat import ChatCreate, ChatDeleted, ChatRead, ChatUpdate
from chat_backend.services.chat_service import ChatService
from chat_backend.services.identity import resolve_owner

router = APIRouter(prefix="/chats", tags=["Chats"])

GuestQuery = Annotated[Optional[str], Query(max_length=128)]


@router.post(
    "",
    response_model=ChatRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new chat",
)
async def create_chat(
    body: ChatCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
) -> ChatRead:
    owner = resolve_owner(user_id_of(current_user), body.guest_id)
    chat = await ChatService.create_chat(db, owner, body.title)
    return ChatRead.model_validate(chat)


@router.get("", response_model=list[ChatRead], summary="List the caller's chats")
async def list_chats(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    guest_id: GuestQuery = None,
) -> list[ChatRead]:
    owner = resolve_owner(user_id_of(current_user), guest_id)
    chats = await ChatService.list_chats(db, owner)
    return [ChatRead.model_validate(c) for c in chats]


@router.get("/{chat_id}", response_model=ChatRead, summary="Get a chat")
async def get_chat(
    chat_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    guest_id: GuestQuery = None,
) -> ChatRead:
    owner = resolve_owner(user_id_of(current_user), guest_id)
    chat = await ChatService.get_chat(db, chat_id, owner)
    return ChatRead.model_validate(chat)


@router.put("/{chat_id}", response_model=ChatRead, summary="Rename a chat")
async def update_chat(
    chat_id: str,
    body: ChatUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
) -> ChatRead:
    owner = resolve_owner(user_id_of(current_user), body.guest_id)
    chat = await ChatService.rename_chat(db, chat_id, owner, body.title)
    return ChatRead.model_validate(chat)


@router.delete(
    "/{chat_id}",
    response_model=ChatDeleted,
    summary="Delete a chat and its messages",
)
async def delete_chat(
    chat_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
    guest_id: GuestQuery = None,
) -> ChatDeleted:
    owner = resolve_owner(user_id_of(current_user), guest_id)
    await ChatService.delete_chat(db, chat_id, owner)
    return ChatDeleted()
