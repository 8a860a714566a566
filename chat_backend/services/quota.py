"""
services/quota.py
-----------------
Guest message ceiling.

A guest may write at most GUEST_MESSAGE_LIMIT messages into one chat
before registering. The count is read right before the write it guards,
without a lock: two concurrent sends from the same guest can both see a
count under the limit and both succeed.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.core.config import settings
from chat_backend.core.exceptions import QuotaExceeded
from chat_backend.core.logging import get_logger
from chat_backend.services.identity import GuestOwner, Owner
from chat_backend.services.message_service import MessageService

logger = get_logger(__name__)


async def check_guest_quota(
    db: AsyncSession,
    chat_id: str,
    owner: Owner,
    limit: int | None = None,
) -> None:
    """Raise QuotaExceeded if a guest owner has used up the chat's allowance."""
    if not isinstance(owner, GuestOwner):
        return

    limit = settings.GUEST_MESSAGE_LIMIT if limit is None else limit
    sent = await MessageService.count_guest_messages(db, chat_id, owner)
    if sent >= limit:
        logger.info("Guest quota exceeded", chat_id=chat_id, sent=sent, limit=limit)
        raise QuotaExceeded(step="check_quota")
