"""
core/exceptions.py
------------------
Domain errors raised by the service layer.

Services never build HTTP responses; they raise one of these and the
exception handler registered in main.py renders it as

    {"detail": <message>, "kind": <kind>, "step": <step or null>}

`step` names the send-message step that failed so a caller can tell
"your message was saved, the reply was not produced" apart from an
earlier rejection.
"""

from typing import Optional

from fastapi import status


class ConversationError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    kind: str = "conversation_error"
    default_message: str = "Conversation request failed"

    def __init__(self, message: Optional[str] = None, step: Optional[str] = None) -> None:
        self.message = message or self.default_message
        self.step = step
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind, "step": self.step}


class IdentityMissing(ConversationError):
    status_code = status.HTTP_400_BAD_REQUEST
    kind = "identity_missing"
    default_message = "A user or guest identity is required"


class NotFound(ConversationError):
    status_code = status.HTTP_404_NOT_FOUND
    kind = "not_found"
    default_message = "Chat not found"


class QuotaExceeded(ConversationError):
    status_code = status.HTTP_403_FORBIDDEN
    kind = "quota_exceeded"
    default_message = "Guest message limit reached: please register to continue"


class GenerationUnavailable(ConversationError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    kind = "generation_unavailable"
    default_message = "The AI service API key is not configured"


class GenerationFailed(ConversationError):
    status_code = status.HTTP_502_BAD_GATEWAY
    kind = "generation_failed"
    default_message = "Error communicating with the AI service"
