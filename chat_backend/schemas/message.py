"""
schemas/message.py
------------------
Pydantic models for the message exchange.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class MessageCreate(BaseModel):
    content: str = Field(
        ...,
        min_length=1,
        max_length=8000,
        examples=["سلام"],
        description="User message sent to the assistant",
    )
    chat_id: str = Field(..., min_length=1, description="Chat to post into")
    guest_id: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Client-generated guest id; ignored when a bearer token is sent",
    )

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("content must not be blank")
        return v


class MessageRead(BaseModel):
    id: str
    chat_id: str
    content: str
    is_ai: bool
    user_id: Optional[str] = None
    guest_id: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SendMessageResponse(BaseModel):
    user_message: MessageRead
    ai_message: MessageRead
    chat_title: Optional[str] = None
