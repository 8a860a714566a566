"""
schemas/user.py
---------------
Pydantic response model for the current user.
"""

from datetime import datetime

from pydantic import BaseModel


class UserRead(BaseModel):
    id: str
    name: str
    email: str
    message_count: int
    created_at: datetime

    model_config = {"from_attributes": True}
