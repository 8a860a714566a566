"""
services/identity.py
--------------------
Caller identity as an explicit tagged union.

Owner is either a UserOwner (registered account, id verified from a
bearer token) or a GuestOwner (opaque client-generated id, no account).
resolve_owner() turns the optional pieces supplied with a request into
exactly one Owner. A verified user id always wins over a guest id.

owner_clause() is the only place that maps an Owner onto the owner
columns of Chat / Message, so every store query is narrowed the same way.
"""

from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import ColumnElement

from chat_backend.core.exceptions import IdentityMissing


@dataclass(frozen=True)
class UserOwner:
    id: str
    kind: str = "user"


@dataclass(frozen=True)
class GuestOwner:
    id: str
    kind: str = "guest"


Owner = Union[UserOwner, GuestOwner]


def resolve_owner(
    user_id: Optional[str] = None,
    guest_id: Optional[str] = None,
) -> Owner:
    """
    Produce the single Owner for a request.

    Raises:
        IdentityMissing: neither a user id nor a non-blank guest id was given.
    """
    if user_id:
        return UserOwner(id=user_id)
    if guest_id and guest_id.strip():
        return GuestOwner(id=guest_id.strip())
    raise IdentityMissing(step="resolve_identity")


def owner_clause(model, owner: Owner) -> ColumnElement[bool]:
    """WHERE clause restricting `model` rows to those owned by `owner`."""
    if isinstance(owner, UserOwner):
        return model.user_id == owner.id
    return model.guest_id == owner.id


def owner_columns(owner: Owner) -> dict:
    """Column values stamping a new Chat / Message with its owner."""
    if isinstance(owner, UserOwner):
        return {"user_id": owner.id, "guest_id": None}
    return {"user_id": None, "guest_id": owner.id}
