"""Fallback responder backed by a hosted language model.

Used only for messages the command router does not recognize. Any model
failure degrades to None so the caller can send the static reply.
"""

from __future__ import annotations

import openai
from openai import AsyncOpenAI

from wabridge.infra.settings import LLMSettings
from wabridge.observability.logging import get_logger

logger = get_logger(__name__)

# Keep replies short enough for a chat bubble
MAX_REPLY_TOKENS = 400


class AIResponder:
    def __init__(self, settings: LLMSettings, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client
        if self._client is None and settings.enabled:
            self._client = AsyncOpenAI(
                api_key=settings.api_key,
                base_url=settings.base_url,
                timeout=settings.timeout,
                max_retries=0,
            )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def reply(self, text: str) -> str | None:
        """Ask the model for a reply. Returns None when disabled or on failure."""
        if self._client is None or not text.strip():
            return None
        try:
            response = await self._client.chat.completions.create(
                model=self._settings.model,
                messages=[
                    {"role": "system", "content": self._settings.system_prompt},
                    {"role": "user", "content": text},
                ],
                max_tokens=MAX_REPLY_TOKENS,
            )
        except openai.OpenAIError as e:
            logger.warning(
                "model reply failed",
                extra={"extra_fields": {"error_type": type(e).__name__}},
            )
            return None

        if not response.choices:
            return None
        content = (response.choices[0].message.content or "").strip()
        return content or None
