"""
models/chat.py
--------------
Chat (conversation) ORM model.

A chat belongs to exactly one owner: either a registered user (user_id)
or a guest (guest_id, an opaque client-generated token). Exactly one of
the two columns is set and neither ever changes after creation. Every
query is narrowed by the owner through owner_clause(), never by an ad hoc
filter.
"""

from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chat_backend.db.base import Base, TimestampMixin, generate_uuid


class Chat(Base, TimestampMixin):
    __tablename__ = "chats"
    __table_args__ = (
        CheckConstraint(
            "(user_id IS NULL) <> (guest_id IS NULL)",
            name="ck_chats_single_owner",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)

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
    user: Mapped[Optional["User"]] = relationship("User", back_populates="chats")  # noqa: F821
    messages: Mapped[list["Message"]] = relationship(  # noqa: F821
        "Message",
        back_populates="chat",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Chat id={self.id} user_id={self.user_id} guest_id={self.guest_id}>"
