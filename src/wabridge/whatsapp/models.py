"""WhatsApp message models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal

MessageKind = Literal["text", "audio", "other"]


@dataclass(frozen=True)
class InboundMessage:
    """A message received from the transport.

    Carries PII (sender, body): keep it in memory only and never log it raw.
    """

    message_id: str
    sender: str
    recipient: str
    body: str
    timestamp: datetime
    kind: MessageKind
    has_media: bool = False
    media: bytes | None = None
    media_mimetype: str | None = None

    def with_body(self, body: str) -> "InboundMessage":
        """Copy with a replaced body (used after audio transcription)."""
        return InboundMessage(
            message_id=self.message_id,
            sender=self.sender,
            recipient=self.recipient,
            body=body,
            timestamp=self.timestamp,
            kind=self.kind,
            has_media=self.has_media,
            media=self.media,
            media_mimetype=self.media_mimetype,
        )

    def webhook_payload(self) -> dict:
        """Fixed JSON shape forwarded to the PHP webhook."""
        return {
            "from": self.sender,
            "to": self.recipient,
            "body": self.body,
            "timestamp": int(self.timestamp.timestamp()),
            "type": self.kind,
            "id": self.message_id,
            "hasMedia": self.has_media,
        }


@dataclass(frozen=True)
class SentConfirmation:
    """Result of a successful outbound send."""

    to: str
    provider_message_id: str | None = None
