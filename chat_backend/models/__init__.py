"""
models/__init__.py
------------------
Re-export all models so table creation (and Alembic, if added) can
discover every table via a single import:

    from chat_backend.models import Base
"""

from chat_backend.db.base import Base
from chat_backend.models.chat import Chat
from chat_backend.models.message import Message
from chat_backend.models.user import User

__all__ = ["Base", "Chat", "Message", "User"]
