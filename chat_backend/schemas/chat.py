"""
schemas/chat.py
---------------
Pydantic request/response models for Chat.

Naming convention:
  ChatCreate / ChatUpdate → inbound request body
  ChatRead                → outbound response body
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ChatCreate(BaseModel):
    title: Optional[str] = Field(
        default=None,
        max_length=255,
        examples=["Trip planning"],
        description="Initial title; the default placeholder is used when omitted",
    )
    guest_id: Optional[str] = Field(default=None, max_length=128)


class ChatUpdate(BaseModel):
    title: Optional[str] = Field(default=None, max_length=255)
    guest_id: Optional[str] = Field(default=None, max_length=128)


class ChatRead(BaseModel):
    id: str
    title: str
    user_id: Optional[str] = None
    guest_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ChatDeleted(BaseModel):
    detail: str = "Chat deleted"
