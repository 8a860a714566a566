# tests/test_identity.py
"""
Unit tests for caller identity resolution.
"""

import pytest

from chat_backend.core.exceptions import IdentityMissing
from chat_backend.models.chat import Chat
from chat_backend.services.identity import (
    GuestOwner,
    UserOwner,
    owner_clause,
    owner_columns,
    resolve_owner,
)


class TestResolveOwner:

    def test_user_only(self):
        assert resolve_owner(user_id="u1") == UserOwner(id="u1")

    def test_guest_only(self):
        assert resolve_owner(guest_id="g1") == GuestOwner(id="g1")

    def test_user_shadows_guest(self):
        """A verified user id always wins over a client-supplied guest id."""
        owner = resolve_owner(user_id="u1", guest_id="g1")
        assert owner == UserOwner(id="u1")
        assert owner.kind == "user"

    def test_guest_id_is_trimmed(self):
        assert resolve_owner(guest_id="  g1 ") == GuestOwner(id="g1")

    @pytest.mark.parametrize("guest_id", [None, "", "   "])
    def test_missing_identity(self, guest_id):
        with pytest.raises(IdentityMissing) as exc_info:
            resolve_owner(user_id=None, guest_id=guest_id)
        assert exc_info.value.step == "resolve_identity"
        assert exc_info.value.status_code == 400


class TestOwnerColumns:

    def test_user_columns(self):
        assert owner_columns(UserOwner(id="u1")) == {"user_id": "u1", "guest_id": None}

    def test_guest_columns(self):
        assert owner_columns(GuestOwner(id="g1")) == {"user_id": None, "guest_id": "g1"}

    def test_clause_targets_matching_column(self):
        user_clause = str(owner_clause(Chat, UserOwner(id="u1")))
        guest_clause = str(owner_clause(Chat, GuestOwner(id="g1")))
        assert "user_id" in user_clause
        assert "guest_id" in guest_clause
