"""
models/message.py
-----------------
Chat message model.

One row per turn: the user's message (is_ai=False) or the AI reply
(is_ai=True). Both carry the chat's owner columns so guest quota counts
and owner-scoped queries need no JOIN. Messages are never edited; they
disappear only when their chat is deleted.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_backend.db.base import Base, TimestampMixin, generate_uuid


class Message(Base, TimestampMixin):
    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_ai: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    chat_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("chats.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Denormalised from the chat for zero-JOIN owner-scoped queries
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    guest_id: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True, index=True
    )

    # Relationships
    chat: Mapped["Chat"] = relationship("Chat", back_populates="messages")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Message id={self.id} chat_id={self.chat_id} is_ai={self.is_ai}>"
