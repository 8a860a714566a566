"""
api/routes/users.py
-------------------
GET /me — The authenticated user's profile, including how many AI replies
          they have received (message_count).
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from chat_backend.dependencies import get_current_user
from chat_backend.models.user import User
from chat_backend.schemas.user import UserRead

router = APIRouter(tags=["Users"])


@router.get(
    "/me",
    response_model=UserRead,
    summary="Get the currently authenticated user",
)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> UserRead:
    return UserRead.model_validate(current_user)
