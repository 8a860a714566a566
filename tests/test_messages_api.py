# tests/test_messages_api.py
"""
Integration tests for the send / list message endpoints.
"""

from datetime import datetime

from chat_backend.core.exceptions import GenerationFailed, GenerationUnavailable
from chat_backend.services.llm_service import get_llm_service


def _send(client, chat_id, content="hello", guest_id="G1", headers=None):
    body = {"content": content, "chat_id": chat_id}
    if guest_id is not None:
        body["guest_id"] = guest_id
    return client.post("/messages", json=body, headers=headers or {})


class TestSendMessage:

    def test_first_exchange_as_guest(self, client, guest_chat, llm):
        response = _send(client, guest_chat["id"], content="سلام")

        assert response.status_code == 201
        data = response.json()
        assert data["user_message"]["is_ai"] is False
        assert data["user_message"]["content"] == "سلام"
        assert data["user_message"]["guest_id"] == "G1"
        assert data["ai_message"]["is_ai"] is True
        assert data["ai_message"]["guest_id"] == "G1"
        assert data["chat_title"] == llm.title

        listed = client.get(f"/messages/{guest_chat['id']}", params={"guest_id": "G1"})
        assert listed.status_code == 200
        assert [m["id"] for m in listed.json()] == [
            data["user_message"]["id"],
            data["ai_message"]["id"],
        ]

    def test_title_set_only_on_first_reply(self, client, guest_chat, llm):
        chat_id = guest_chat["id"]
        first = _send(client, chat_id).json()
        second = _send(client, chat_id).json()

        assert first["chat_title"] == llm.title
        assert second["chat_title"] is None
        assert len(llm.calls_for("derive_title")) == 1

        # The title is derived from the AI reply, not the user's message
        title_prompt = llm.calls_for("derive_title")[0][0].content
        assert first["ai_message"]["content"] in title_prompt

        chat = client.get(f"/chats/{chat_id}", params={"guest_id": "G1"}).json()
        assert chat["title"] == llm.title

    def test_manual_title_survives_later_sends(self, client, guest_chat):
        chat_id = guest_chat["id"]
        _send(client, chat_id)
        client.put(f"/chats/{chat_id}", json={"title": "My Notes", "guest_id": "G1"})
        response = _send(client, chat_id)

        assert response.json()["chat_title"] is None
        chat = client.get(f"/chats/{chat_id}", params={"guest_id": "G1"}).json()
        assert chat["title"] == "My Notes"

    def test_context_uses_latest_ten_prior_messages(self, client, guest_chat, llm):
        chat_id = guest_chat["id"]
        for i in range(6):
            _send(client, chat_id, content=f"question {i}")

        _send(client, chat_id, content="newest question")

        turns = llm.calls_for("generate_reply")[-1]
        history = client.get(f"/messages/{chat_id}", params={"guest_id": "G1"}).json()
        prior = history[:-2]  # everything before the newest exchange

        assert turns[0].role == "user"  # persona
        assert [t.content for t in turns[1:-1]] == [m["content"] for m in prior[-10:]]
        assert [t.role for t in turns[1:-1]] == [
            "model" if m["is_ai"] else "user" for m in prior[-10:]
        ]
        assert turns[-1].content == "newest question"

    def test_blank_content_rejected(self, client, guest_chat):
        response = _send(client, guest_chat["id"], content="   ")
        assert response.status_code == 422

    def test_missing_identity(self, client, guest_chat):
        response = _send(client, guest_chat["id"], guest_id=None)

        assert response.status_code == 400
        assert response.json()["kind"] == "identity_missing"

    def test_unknown_chat(self, client):
        response = _send(client, "does-not-exist")

        assert response.status_code == 404
        assert response.json()["step"] == "validate_chat"

    def test_cannot_post_into_another_guests_chat(self, client, guest_chat, count_messages):
        response = _send(client, guest_chat["id"], guest_id="G2")

        assert response.status_code == 404
        assert count_messages(guest_chat["id"]) == 0


class TestGuestQuota:

    def test_fifty_first_message_rejected(self, client, guest_chat, count_messages):
        chat_id = guest_chat["id"]
        for i in range(50):
            response = _send(client, chat_id, content=f"message {i}")
            assert response.status_code == 201, i

        response = _send(client, chat_id, content="one too many")

        assert response.status_code == 403
        assert response.json()["kind"] == "quota_exceeded"
        assert response.json()["step"] == "check_quota"
        assert count_messages(chat_id) == 100

    def test_registered_users_are_not_limited(self, client, make_user, auth_headers):
        headers = auth_headers(make_user())
        chat_id = client.post("/chats", json={}, headers=headers).json()["id"]

        for i in range(51):
            response = _send(client, chat_id, guest_id=None, headers=headers)
            assert response.status_code == 201, i


class TestPartialFailure:

    def test_generation_failure_keeps_user_message(self, client, guest_chat, llm):
        llm.fail_on("generate_reply", GenerationFailed(step="generate_reply"))

        response = _send(client, guest_chat["id"], content="are you there?")

        assert response.status_code == 502
        assert response.json() == {
            "detail": "Error communicating with the AI service",
            "kind": "generation_failed",
            "step": "generate_reply",
        }
        listed = client.get(
            f"/messages/{guest_chat['id']}", params={"guest_id": "G1"}
        ).json()
        assert [(m["content"], m["is_ai"]) for m in listed] == [("are you there?", False)]

    def test_missing_api_key_is_server_error(self, client, guest_chat, llm):
        llm.fail_on("generate_reply", GenerationUnavailable(step="generate_reply"))

        response = _send(client, guest_chat["id"])

        assert response.status_code == 500
        assert response.json()["kind"] == "generation_unavailable"

    def test_title_failure_keeps_user_message_only(self, client, guest_chat, llm):
        llm.fail_on("derive_title", GenerationFailed(step="derive_title"))

        response = _send(client, guest_chat["id"])

        assert response.status_code == 502
        assert response.json()["step"] == "derive_title"
        listed = client.get(
            f"/messages/{guest_chat['id']}", params={"guest_id": "G1"}
        ).json()
        assert len(listed) == 1
        assert listed[0]["is_ai"] is False

        chat = client.get(f"/chats/{guest_chat['id']}", params={"guest_id": "G1"}).json()
        assert chat["title"] == guest_chat["title"]

    def test_retry_after_failure_still_titles_chat(self, client, guest_chat, llm):
        llm.fail_on("generate_reply", GenerationFailed(step="generate_reply"))
        _send(client, guest_chat["id"])
        llm.failures.clear()

        response = _send(client, guest_chat["id"])

        assert response.status_code == 201
        assert response.json()["chat_title"] == llm.title


class TestUsageCounter:

    def test_registered_send_increments_counter(self, client, make_user, auth_headers):
        headers = auth_headers(make_user(message_count=3))
        chat_id = client.post("/chats", json={}, headers=headers).json()["id"]

        response = _send(client, chat_id, guest_id=None, headers=headers)

        assert response.status_code == 201
        assert client.get("/me", headers=headers).json()["message_count"] == 4

    def test_failed_send_does_not_count(self, client, make_user, auth_headers, llm):
        headers = auth_headers(make_user(message_count=3))
        chat_id = client.post("/chats", json={}, headers=headers).json()["id"]
        llm.fail_on("generate_reply", GenerationFailed(step="generate_reply"))

        _send(client, chat_id, guest_id=None, headers=headers)

        assert client.get("/me", headers=headers).json()["message_count"] == 3

    def test_guest_send_touches_no_counter(self, client, guest_chat, make_user, auth_headers):
        headers = auth_headers(make_user(message_count=3))

        assert _send(client, guest_chat["id"]).status_code == 201
        assert client.get("/me", headers=headers).json()["message_count"] == 3


class TestListMessages:

    def test_ordered_by_creation_time(self, client, guest_chat):
        for i in range(5):
            _send(client, guest_chat["id"], content=f"q{i}")

        listed = client.get(
            f"/messages/{guest_chat['id']}", params={"guest_id": "G1"}
        ).json()
        stamps = [datetime.fromisoformat(m["created_at"]) for m in listed]

        assert len(listed) == 10
        assert stamps == sorted(stamps)
        assert [m["is_ai"] for m in listed] == [False, True] * 5

    def test_other_guest_gets_not_found(self, client, guest_chat):
        _send(client, guest_chat["id"])

        response = client.get(f"/messages/{guest_chat['id']}", params={"guest_id": "G2"})

        assert response.status_code == 404
        assert response.json()["kind"] == "not_found"

    def test_user_token_shadows_guest_id(self, client, guest_chat, make_user, auth_headers):
        """A logged-in caller cannot read a guest chat by also sending its guest id."""
        _send(client, guest_chat["id"])
        headers = auth_headers(make_user())

        response = client.get(
            f"/messages/{guest_chat['id']}",
            params={"guest_id": "G1"},
            headers=headers,
        )

        assert response.status_code == 404

    def test_listing_does_not_need_generation_client(self, client, guest_chat):
        _send(client, guest_chat["id"])

        def unavailable():
            raise AssertionError("generation client requested while listing")

        client.app.dependency_overrides[get_llm_service] = unavailable
        response = client.get(f"/messages/{guest_chat['id']}", params={"guest_id": "G1"})

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_requires_identity(self, client, guest_chat):
        response = client.get(f"/messages/{guest_chat['id']}")
        assert response.status_code == 400

    def test_invalid_token_rejected(self, client, guest_chat):
        response = client.get(
            f"/messages/{guest_chat['id']}",
            params={"guest_id": "G1"},
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401
