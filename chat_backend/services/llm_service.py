"""
services/llm_service.py
-----------------------
Text-generation client for Gemini, reached through its OpenAI-compatible
endpoint with the openai SDK.

Every call is:
  1. Executed once (SDK retries disabled, bounded by LLM_TIMEOUT_SECONDS)
  2. Logged with its latency
  3. Tracked in MLflow when MLFLOW_TRACKING_URI is set

Failures are mapped onto the domain errors:
  - no API key                  → GenerationUnavailable
  - no choice / empty content   → GenerationFailed ("no response")
  - transport error or timeout  → GenerationFailed ("communication")
"""

import time
from typing import Optional, Sequence

import openai

from chat_backend.core.config import settings
from chat_backend.core.exceptions import GenerationFailed, GenerationUnavailable
from chat_backend.core.logging import get_logger
from chat_backend.services.context_window import Turn
from chat_backend.services.mlflow_service import track_llm_call

logger = get_logger(__name__)

# Our history uses Gemini's role names; the OpenAI wire format wants these
_WIRE_ROLES = {"user": "user", "model": "assistant"}


class LLMService:

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[openai.AsyncOpenAI] = None,
    ) -> None:
        self._api_key = settings.GEMINI_API_KEY if api_key is None else api_key
        self._base_url = base_url or settings.LLM_BASE_URL
        self.model = model or settings.LLM_MODEL
        self._timeout = settings.LLM_TIMEOUT_SECONDS if timeout is None else timeout
        self._client = client

    def _get_client(self) -> openai.AsyncOpenAI:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    # ── Generate ─────────────────────────────────────────────────────────────

    async def generate(
        self,
        turns: Sequence[Turn],
        step: str = "generate_reply",
        owner_kind: str = "unknown",
    ) -> str:
        """
        Send the ordered turns and return the generated text.

        Raises:
            GenerationUnavailable: no API key is configured.
            GenerationFailed: the call failed or produced no text.
        """
        if not self._api_key:
            logger.error("LLM API key missing", step=step)
            raise GenerationUnavailable(step=step)

        messages = [
            {"role": _WIRE_ROLES[turn.role], "content": turn.content}
            for turn in turns
        ]
        start = time.monotonic()

        try:
            completion = await self._get_client().chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=settings.LLM_MAX_TOKENS,
                temperature=settings.LLM_TEMPERATURE,
            )
        except openai.APIError as exc:
            logger.error("LLM API error", step=step, error=str(exc))
            raise GenerationFailed(step=step) from exc

        text = _first_text(completion)
        latency_ms = round((time.monotonic() - start) * 1000, 1)

        if text is None:
            logger.error("LLM returned no usable content", step=step, latency_ms=latency_ms)
            raise GenerationFailed("No response received from the AI service", step=step)

        logger.info(
            "LLM response generated",
            step=step,
            turns=len(messages),
            latency_ms=latency_ms,
        )

        # Track in MLflow (never raises)
        track_llm_call(
            prompt_chars=sum(len(m["content"]) for m in messages),
            response=text,
            latency_ms=latency_ms,
            purpose=step,
            owner_kind=owner_kind,
            model=self.model,
        )

        return text


def _first_text(completion) -> Optional[str]:
    choices = getattr(completion, "choices", None)
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not content or not content.strip():
        return None
    return content


# Shared across all requests; the HTTP client is created on first use
llm_service = LLMService()


def get_llm_service() -> LLMService:
    """FastAPI dependency returning the shared generation client."""
    return llm_service
