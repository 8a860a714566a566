"""
services/title_service.py
-------------------------
Automatic chat titles.

The first AI reply in a chat is summarised into a three-word title by a
second generation call, and that title replaces the placeholder. "First"
means no AI message exists in the chat yet, checked right before the new
reply is stored. The check and the title write are not atomic, so two
concurrent first replies may both retitle the chat.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.core.config import settings
from chat_backend.core.exceptions import GenerationFailed
from chat_backend.core.logging import get_logger
from chat_backend.services.chat_service import ChatService
from chat_backend.services.context_window import Turn
from chat_backend.services.llm_service import LLMService
from chat_backend.services.message_service import MessageService

logger = get_logger(__name__)

TITLE_STEP = "derive_title"
MAX_TITLE_LENGTH = 255


def clean_title(raw: str) -> str:
    """Collapse whitespace and strip wrapping quotes / trailing dots."""
    title = " ".join(raw.split()).strip("\"'«»“”.").strip()
    return title[:MAX_TITLE_LENGTH]


async def derive_title(
    llm: LLMService,
    reply: str,
    owner_kind: str = "unknown",
) -> str:
    prompt = settings.TITLE_PROMPT.format(reply=reply)
    raw = await llm.generate(
        [Turn(role="user", content=prompt)],
        step=TITLE_STEP,
        owner_kind=owner_kind,
    )
    title = clean_title(raw)
    if not title:
        raise GenerationFailed("Chat title was not received", step=TITLE_STEP)
    return title


async def assign_title_if_first_reply(
    db: AsyncSession,
    llm: LLMService,
    chat_id: str,
    reply: str,
    owner_kind: str = "unknown",
) -> Optional[str]:
    """
    Retitle the chat if `reply` is about to become its first AI message.

    Returns the new title, or None when the chat already has an AI reply.
    """
    if await MessageService.count_ai_messages(db, chat_id) > 0:
        return None

    title = await derive_title(llm, reply, owner_kind=owner_kind)
    await ChatService.set_title(db, chat_id, title)
    logger.info("Chat titled from first reply", chat_id=chat_id)
    return title
