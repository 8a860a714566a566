"""
services/chat_service.py
------------------------
Chat records: create, look up, retitle and delete, always scoped by Owner.

A chat that exists but belongs to someone else is reported exactly like a
chat that does not exist, so one caller can never learn about another's
chats.
"""

from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.core.config import settings
from chat_backend.core.exceptions import NotFound
from chat_backend.core.logging import get_logger
from chat_backend.db.base import utcnow
from chat_backend.models.chat import Chat
from chat_backend.models.message import Message
from chat_backend.services.identity import Owner, owner_clause, owner_columns

logger = get_logger(__name__)


class ChatService:

    @staticmethod
    async def create_chat(
        db: AsyncSession,
        owner: Owner,
        title: Optional[str] = None,
    ) -> Chat:
        chat = Chat(
            title=(title or "").strip() or settings.DEFAULT_CHAT_TITLE,
            **owner_columns(owner),
        )
        db.add(chat)
        await db.commit()
        await db.refresh(chat)
        logger.info("Chat created", chat_id=chat.id, owner_kind=owner.kind)
        return chat

    @staticmethod
    async def find_chat(db: AsyncSession, chat_id: str, owner: Owner) -> Chat | None:
        result = await db.execute(
            select(Chat).where(Chat.id == chat_id, owner_clause(Chat, owner))
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_chat(
        db: AsyncSession,
        chat_id: str,
        owner: Owner,
        step: Optional[str] = None,
    ) -> Chat:
        """
        Return the chat if `owner` owns it.

        Raises:
            NotFound: the chat is missing or owned by someone else.
        """
        chat = await ChatService.find_chat(db, chat_id, owner)
        if chat is None:
            raise NotFound(step=step)
        return chat

    @staticmethod
    async def list_chats(db: AsyncSession, owner: Owner) -> list[Chat]:
        """Owner's chats, most recently updated first."""
        result = await db.execute(
            select(Chat)
            .where(owner_clause(Chat, owner))
            .order_by(Chat.updated_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def rename_chat(
        db: AsyncSession,
        chat_id: str,
        owner: Owner,
        title: Optional[str],
    ) -> Chat:
        """Explicit title edit. A blank title keeps the current one."""
        chat = await ChatService.get_chat(db, chat_id, owner)
        new_title = (title or "").strip()
        if new_title:
            chat.title = new_title[:255]
            await db.commit()
            await db.refresh(chat)
            logger.info("Chat renamed", chat_id=chat.id)
        return chat

    @staticmethod
    async def set_title(db: AsyncSession, chat_id: str, title: str) -> None:
        """Overwrite the title of a chat already verified for ownership."""
        await db.execute(
            update(Chat)
            .where(Chat.id == chat_id)
            .values(title=title[:255], updated_at=utcnow())
        )
        await db.commit()

    @staticmethod
    async def delete_chat(db: AsyncSession, chat_id: str, owner: Owner) -> None:
        """Delete the chat and every message in it."""
        chat = await ChatService.get_chat(db, chat_id, owner)
        result = await db.execute(delete(Message).where(Message.chat_id == chat.id))
        await db.delete(chat)
        await db.commit()
        logger.info(
            "Chat deleted",
            chat_id=chat_id,
            owner_kind=owner.kind,
            messages_deleted=result.rowcount,
        )
