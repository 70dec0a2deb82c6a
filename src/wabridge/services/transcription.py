"""Audio transcription for voice notes, through the model provider's speech API."""

from __future__ import annotations

import openai
from openai import AsyncOpenAI

from wabridge.infra.settings import LLMSettings
from wabridge.observability.logging import get_logger

logger = get_logger(__name__)

_EXTENSIONS = {
    "audio/ogg": "ogg",
    "audio/mpeg": "mp3",
    "audio/mp4": "m4a",
    "audio/wav": "wav",
    "audio/webm": "webm",
}


class Transcriber:
    def __init__(self, settings: LLMSettings, client: AsyncOpenAI | None = None) -> None:
        self._model = settings.transcription_model
        self._client = client
        if self._client is None and settings.enabled and settings.transcribe_audio:
            self._client = AsyncOpenAI(
                api_key=settings.api_key,
                base_url=settings.base_url,
                timeout=settings.timeout,
                max_retries=0,
            )

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def transcribe(self, audio: bytes, mimetype: str | None) -> str | None:
        """Return the transcript, or None when disabled, empty or failed."""
        if self._client is None or not audio:
            return None

        base_type = (mimetype or "audio/ogg").split(";", 1)[0].strip()
        filename = f"voice.{_EXTENSIONS.get(base_type, 'ogg')}"
        try:
            result = await self._client.audio.transcriptions.create(
                model=self._model,
                file=(filename, audio, base_type),
            )
        except openai.OpenAIError as e:
            logger.warning("transcription failed", extra={"extra_fields": {"error_type": type(e).__name__}})
            return None

        text = (getattr(result, "text", "") or "").strip()
        logger.info("audio transcribed", extra={"extra_fields": {"bytes": len(audio), "text_len": len(text)}})
        return text or None
