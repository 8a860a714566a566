"""
services/message_service.py
----------------------------
Message persistence for a chat.

Callers must already have verified that the owner owns the chat; the
owner passed to add_message is stamped on the row so guest quota counts
can be answered from the messages table alone.

Each write commits on its own. The send workflow depends on that: a
user message stays saved even if the AI reply that follows it fails.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.core.logging import get_logger
from chat_backend.models.message import Message
from chat_backend.services.identity import GuestOwner, Owner, owner_columns

logger = get_logger(__name__)


class MessageService:

    @staticmethod
    async def add_message(
        db: AsyncSession,
        chat_id: str,
        owner: Owner,
        content: str,
        is_ai: bool = False,
    ) -> Message:
        message = Message(
            chat_id=chat_id,
            content=content,
            is_ai=is_ai,
            **owner_columns(owner),
        )
        db.add(message)
        await db.commit()
        await db.refresh(message)

        logger.info(
            "Message stored",
            message_id=message.id,
            chat_id=chat_id,
            is_ai=is_ai,
            content_length=len(content),
        )
        return message

    @staticmethod
    async def list_messages(db: AsyncSession, chat_id: str) -> list[Message]:
        """All messages of a chat, oldest first."""
        result = await db.execute(
            select(Message)
            .where(Message.chat_id == chat_id)
            .order_by(Message.created_at.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def recent_messages(
        db: AsyncSession,
        chat_id: str,
        limit: int,
        exclude_id: Optional[str] = None,
    ) -> list[Message]:
        """
        The latest `limit` messages of a chat, returned oldest first.

        exclude_id drops one message (the turn being answered) so it is
        not repeated in the history slice.
        """
        query = select(Message).where(Message.chat_id == chat_id)
        if exclude_id is not None:
            query = query.where(Message.id != exclude_id)

        result = await db.execute(
            query.order_by(Message.created_at.desc()).limit(limit)
        )
        return list(reversed(result.scalars().all()))

    @staticmethod
    async def count_ai_messages(db: AsyncSession, chat_id: str) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Message)
            .where(Message.chat_id == chat_id, Message.is_ai.is_(True))
        )
        return result.scalar_one()

    @staticmethod
    async def count_guest_messages(
        db: AsyncSession, chat_id: str, guest: GuestOwner
    ) -> int:
        """Non-AI messages this guest has written in the chat."""
        result = await db.execute(
            select(func.count())
            .select_from(Message)
            .where(
                Message.chat_id == chat_id,
                Message.guest_id == guest.id,
                Message.is_ai.is_(False),
            )
        )
        return result.scalar_one()
