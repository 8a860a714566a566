"""
services/user_service.py
------------------------
Registered-user lookups and the per-user AI reply counter.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.core.logging import get_logger
from chat_backend.models.user import User

logger = get_logger(__name__)


class UserService:

    @staticmethod
    async def get_user(db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def increment_message_count(db: AsyncSession, user_id: str) -> None:
        """Atomic +1 on message_count, evaluated in the database."""
        await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(message_count=User.message_count + 1)
        )
        await db.commit()
        logger.debug("User message count incremented", user_id=user_id)
