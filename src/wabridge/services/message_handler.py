"""Inbound message handling.

For each received message:
1. Forward metadata to the PHP webhook in a separate task (never awaited here).
2. Transcribe voice notes when transcription is enabled.
3. Route the text through the command router.
4. Fall back to the model responder, then to a static reply.
5. Send the reply back through the gateway.

Security: NEVER log sender or text. Only hashes and lengths.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from wabridge.domain.commands import clean_text
from wabridge.domain.errors import BridgeError
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import hash_identifier
from wabridge.whatsapp.models import InboundMessage
from wabridge.whatsapp.outbound import SendGateway
from wabridge.whatsapp.templates import render

from .responder import AIResponder
from .router import UNRECOGNIZED, CommandResult, CommandRouter
from .transcription import Transcriber
from .webhook_forwarder import WebhookForwarder

logger = get_logger(__name__)


@dataclass(frozen=True)
class HandledMessage:
    result: CommandResult
    reply: str | None
    source: str  # "ping" | "command" | "ai" | "fallback" | "none"
    sent: bool = False


class MessageHandler:
    def __init__(
        self,
        *,
        router: CommandRouter,
        gateway: SendGateway,
        forwarder: WebhookForwarder,
        responder: AIResponder | None = None,
        transcriber: Transcriber | None = None,
    ) -> None:
        self._router = router
        self._gateway = gateway
        self._forwarder = forwarder
        self._responder = responder
        self._transcriber = transcriber
        self._forward_tasks: set[asyncio.Task[bool]] = set()

    async def __call__(self, message: InboundMessage) -> None:
        await self.handle(message)

    async def handle(self, message: InboundMessage) -> HandledMessage:
        logger.info(
            "inbound message",
            extra={
                "extra_fields": {
                    "kind": message.kind,
                    "message_id_prefix": message.message_id[:8],
                    "from_hash": hash_identifier(message.sender),
                    "text_len": len(message.body),
                    "has_media": message.has_media,
                }
            },
        )

        if self._forwarder.enabled:
            task = asyncio.create_task(self._forwarder.forward(message))
            self._forward_tasks.add(task)
            task.add_done_callback(self._forward_tasks.discard)

        message = await self._maybe_transcribe(message)
        handled = await self._build_reply(message)

        if handled.reply is None:
            return handled

        try:
            await self._gateway.reply(message.sender, handled.reply)
        except BridgeError as e:
            logger.error(
                "reply not sent",
                extra={"extra_fields": {"error_type": type(e).__name__, "source": handled.source}},
            )
            return handled

        return HandledMessage(result=handled.result, reply=handled.reply, source=handled.source, sent=True)

    async def _maybe_transcribe(self, message: InboundMessage) -> InboundMessage:
        if message.kind != "audio" or message.body or self._transcriber is None or not message.media:
            return message
        transcript = await self._transcriber.transcribe(message.media, message.media_mimetype)
        if transcript is None:
            return message
        return message.with_body(transcript)

    async def _build_reply(self, message: InboundMessage) -> HandledMessage:
        text = clean_text(message.body)

        if not text:
            if message.kind == "audio":
                return HandledMessage(result=UNRECOGNIZED, reply=render("audio_not_transcribed"), source="fallback")
            return HandledMessage(result=UNRECOGNIZED, reply=None, source="none")

        if text == "ping":
            return HandledMessage(result=UNRECOGNIZED, reply=render("pong"), source="ping")

        result = await self._router.route(message.sender, text)
        if result.recognized:
            return HandledMessage(result=result, reply=result.reply, source="command")

        if self._responder is not None:
            ai_reply = await self._responder.reply(message.body)
            if ai_reply:
                return HandledMessage(result=result, reply=ai_reply, source="ai")

        return HandledMessage(result=result, reply=render("not_understood"), source="fallback")

    async def aclose(self, timeout: float = 5.0) -> None:
        """Wait briefly for in-flight webhook forwards."""
        pending = [t for t in self._forward_tasks if not t.done()]
        if pending:
            await asyncio.wait(pending, timeout=timeout)
