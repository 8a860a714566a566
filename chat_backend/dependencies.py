"""
dependencies.py
---------------
FastAPI dependency injection functions for caller identity.

Flow:
  1. OAuth2PasswordBearer (auto_error=False) extracts an optional Bearer
     token from the Authorization header.
  2. decode_access_token validates and parses the JWT.
  3. get_optional_user loads the User the token names; no token means an
     anonymous caller, who may still act as a guest via guest_id.
  4. get_current_user layers "a registered user is required" on top.

A token that is present but invalid, expired, or names an unknown user is
always a 401; it never silently degrades the caller to a guest.
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from chat_backend.core.logging import get_logger
from chat_backend.core.security import decode_access_token
from chat_backend.db.session import get_db
from chat_backend.models.user import User
from chat_backend.services.user_service import UserService

logger = get_logger(__name__)

# Tokens are issued by the account service's login endpoint
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/login", auto_error=False)

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Could not validate credentials",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_optional_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Optional[User]:
    """
    Return the authenticated User, or None when no bearer token was sent.
    Raises 401 if a token was sent but cannot be verified.
    """
    if not token:
        return None

    try:
        payload = decode_access_token(token)
        user_id: Optional[str] = payload.get("sub")
        if not user_id:
            raise _CREDENTIALS_EXCEPTION
    except JWTError as exc:
        logger.warning("JWT decode failed", error=str(exc))
        raise _CREDENTIALS_EXCEPTION

    # Always re-verify against DB so deleted users are rejected
    user = await UserService.get_user(db, user_id)
    if user is None:
        logger.warning("User from valid JWT not found in DB", user_id=user_id)
        raise _CREDENTIALS_EXCEPTION

    return user


async def get_current_user(
    user: Annotated[Optional[User], Depends(get_optional_user)],
) -> User:
    """Like get_optional_user, but a bearer token is mandatory."""
    if user is None:
        raise _CREDENTIALS_EXCEPTION
    return user


def user_id_of(user: Optional[User]) -> Optional[str]:
    return user.id if user is not None else None
