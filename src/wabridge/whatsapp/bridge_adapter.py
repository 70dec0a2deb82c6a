"""Bridge payload adapter - validate and normalize inbound message frames.

The bridge relays the provider message mostly as-is (Baileys-style ``key`` /
``message`` objects). This module turns it into an InboundMessage.
"""

import base64
import binascii
from typing import Any

from wabridge.infra.time import from_unix

from .models import InboundMessage, MessageKind

_TEXT_TYPES = {"conversation", "extendedTextMessage", "chat", "text"}
_AUDIO_TYPES = {"audioMessage", "ptt", "audio"}


class InvalidPayloadError(Exception):
    """Raised when a bridge message frame has an invalid shape."""

    pass


def _kind_for(message_type: str) -> MessageKind:
    if message_type in _TEXT_TYPES:
        return "text"
    if message_type in _AUDIO_TYPES:
        return "audio"
    return "other"


def _extract_text(message_type: str, message: dict[str, Any], data: dict[str, Any]) -> str:
    if message_type == "conversation":
        return message.get("conversation") or ""
    if message_type == "extendedTextMessage":
        return (message.get("extendedTextMessage") or {}).get("text") or ""
    # whatsapp-web.js style bridges put the text in "body"
    return data.get("body") or ""


def _decode_media(media: dict[str, Any]) -> tuple[bytes | None, str | None]:
    raw = media.get("data")
    if not raw:
        return None, media.get("mimetype")
    try:
        return base64.b64decode(raw, validate=True), media.get("mimetype")
    except (binascii.Error, ValueError):
        raise InvalidPayloadError("media data is not valid base64") from None


def normalize(data: dict[str, Any]) -> InboundMessage:
    """Normalize the ``data`` object of a bridge ``message`` frame.

    Args:
        data: Message object relayed by the bridge.

    Returns:
        InboundMessage (contains PII).

    Raises:
        InvalidPayloadError: If id or sender are missing, or media is corrupt.
    """
    if not isinstance(data, dict):
        raise InvalidPayloadError("message data must be an object")

    key = data.get("key") or {}

    message_id = key.get("id") or data.get("id")
    if not message_id or not isinstance(message_id, str):
        raise InvalidPayloadError("missing or invalid message id")

    sender = key.get("remoteJid") or data.get("from")
    if not sender or not isinstance(sender, str):
        raise InvalidPayloadError("missing sender")

    message_type = str(data.get("messageType") or data.get("type") or "unknown")
    message = data.get("message") or {}

    media_bytes, mimetype = (None, None)
    if isinstance(data.get("media"), dict):
        media_bytes, mimetype = _decode_media(data["media"])

    return InboundMessage(
        message_id=message_id,
        sender=sender,
        recipient=str(data.get("to") or ""),
        body=_extract_text(message_type, message, data),
        timestamp=from_unix(data.get("messageTimestamp") or data.get("timestamp")),
        kind=_kind_for(message_type),
        has_media=bool(data.get("hasMedia")) or media_bytes is not None,
        media=media_bytes,
        media_mimetype=mimetype,
    )


def is_from_self(data: dict[str, Any]) -> bool:
    """True for frames echoing messages this account sent."""
    key = data.get("key") or {}
    return bool(key.get("fromMe") or data.get("fromMe"))
