"""
services/conversation_service.py
--------------------------------
The send-message and list-messages use cases.

Send message runs these steps strictly in order:

    resolve_identity → validate_chat → check_quota (guests)
    → persist_user_message → build_context → generate_reply
    → derive_title (first reply only) → persist_ai_message
    → increment_counter (registered users) → respond

Every write commits on its own and nothing is rolled back when a later
step fails: if generation fails the user's message stays saved and no AI
message is written. The failing step is carried on the raised error and
bound to the log context.
"""

from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.core.config import settings
from chat_backend.core.logging import get_logger
from chat_backend.models.message import Message
from chat_backend.services.chat_service import ChatService
from chat_backend.services.context_window import build_context
from chat_backend.services.identity import UserOwner, resolve_owner
from chat_backend.services.llm_service import LLMService
from chat_backend.services.message_service import MessageService
from chat_backend.services.quota import check_guest_quota
from chat_backend.services.title_service import assign_title_if_first_reply
from chat_backend.services.user_service import UserService

logger = get_logger(__name__)


@dataclass(frozen=True)
class SendMessageCommand:
    content: str
    chat_id: str
    user_id: Optional[str] = None
    guest_id: Optional[str] = None


@dataclass(frozen=True)
class SendMessageResult:
    user_message: Message
    ai_message: Message
    chat_title: Optional[str]


def _enter(step: str) -> None:
    structlog.contextvars.bind_contextvars(step=step)


class ConversationService:

    def __init__(self, db: AsyncSession, llm: Optional[LLMService] = None) -> None:
        self.db = db
        self.llm = llm

    async def send_message(self, command: SendMessageCommand) -> SendMessageResult:
        if self.llm is None:
            raise RuntimeError("send_message needs an LLMService")
        try:
            return await self._send_message(command)
        finally:
            structlog.contextvars.unbind_contextvars("step")

    async def _send_message(self, command: SendMessageCommand) -> SendMessageResult:
        _enter("resolve_identity")
        owner = resolve_owner(command.user_id, command.guest_id)

        _enter("validate_chat")
        chat = await ChatService.get_chat(
            self.db, command.chat_id, owner, step="validate_chat"
        )

        _enter("check_quota")
        await check_guest_quota(self.db, chat.id, owner)

        _enter("persist_user_message")
        user_message = await MessageService.add_message(
            self.db, chat.id, owner, command.content, is_ai=False
        )

        _enter("build_context")
        history = await MessageService.recent_messages(
            self.db,
            chat.id,
            limit=settings.CONTEXT_WINDOW_SIZE,
            exclude_id=user_message.id,
        )
        turns = build_context(history, command.content, persona=settings.SYSTEM_PROMPT)

        _enter("generate_reply")
        reply = await self.llm.generate(
            turns, step="generate_reply", owner_kind=owner.kind
        )

        _enter("derive_title")
        chat_title = await assign_title_if_first_reply(
            self.db, self.llm, chat.id, reply, owner_kind=owner.kind
        )

        _enter("persist_ai_message")
        ai_message = await MessageService.add_message(
            self.db, chat.id, owner, reply, is_ai=True
        )

        if isinstance(owner, UserOwner):
            _enter("increment_counter")
            await UserService.increment_message_count(self.db, owner.id)

        logger.info(
            "Message exchange completed",
            chat_id=chat.id,
            owner_kind=owner.kind,
            titled=chat_title is not None,
        )
        return SendMessageResult(
            user_message=user_message,
            ai_message=ai_message,
            chat_title=chat_title,
        )

    async def list_messages(
        self,
        chat_id: str,
        user_id: Optional[str] = None,
        guest_id: Optional[str] = None,
    ) -> list[Message]:
        """
        All messages of a chat owned by the caller, oldest first.

        Raises:
            IdentityMissing: no caller identity.
            NotFound: the chat is missing or owned by someone else.
        """
        owner = resolve_owner(user_id, guest_id)
        chat = await ChatService.get_chat(self.db, chat_id, owner, step="validate_chat")
        return await MessageService.list_messages(self.db, chat.id)
