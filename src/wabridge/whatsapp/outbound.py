"""Outbound WhatsApp messaging through the active session.

Security: NEVER log destinations or text. Only log hashes and lengths.
"""

from wabridge.domain.errors import AuthFailure, NotConnected, TransportError
from wabridge.domain.phone import normalize_address
from wabridge.domain.state import ConnectionState
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import hash_identifier, safe_log_context

from .lifecycle import LifecycleManager
from .models import SentConfirmation
from .transport import Transport

logger = get_logger(__name__)

# WhatsApp rejects longer bodies; we truncate instead of failing
MAX_BODY_LENGTH = 4096


class SendGateway:
    """Validates a destination and body and submits them to the transport.

    Sends are never retried here; retrying is up to the caller.
    """

    def __init__(
        self,
        manager: LifecycleManager,
        *,
        country_code: str = "52",
        jid_suffix: str = "@c.us",
        max_length: int = MAX_BODY_LENGTH,
    ) -> None:
        self._manager = manager
        self._country_code = country_code
        self._jid_suffix = jid_suffix
        self._max_length = max_length

    def address_for(self, raw_destination: str) -> str:
        """Canonical address for raw input. Raises InvalidAddress."""
        return normalize_address(
            raw_destination, country_code=self._country_code, jid_suffix=self._jid_suffix
        )

    async def send(self, raw_destination: str, body: str) -> SentConfirmation:
        """Send one text message.

        Args:
            raw_destination: Phone number as typed by the caller. NEVER logged.
            body: Message text, truncated to the maximum length. NEVER logged.

        Returns:
            SentConfirmation with the canonical address used.

        Raises:
            NotConnected: Session not ready (checked before anything else).
            AuthFailure: Session rejected by WhatsApp (a NotConnected).
            InvalidAddress: Destination fails normalization.
            TransportError: The transport failed to submit the message.
        """
        transport = self._require_transport()
        address = self.address_for(raw_destination)
        text = (body or "")[: self._max_length]

        log_ctx = safe_log_context(
            to_hash=hash_identifier(address),
            text_len=len(text),
            truncated=len(body or "") > self._max_length,
        )
        logger.info("sending outbound message", extra={"extra_fields": log_ctx})

        try:
            provider_id = await transport.send_text(address, text)
        except TransportError:
            logger.error("outbound send failed", extra={"extra_fields": log_ctx})
            raise
        except Exception as e:
            logger.error(
                "outbound send failed",
                extra={"extra_fields": {**log_ctx, "error_type": type(e).__name__}},
            )
            raise TransportError(str(e) or type(e).__name__) from e

        logger.info("outbound message sent", extra={"extra_fields": log_ctx})
        return SentConfirmation(to=address, provider_message_id=provider_id)

    async def reply(self, address: str, body: str) -> SentConfirmation:
        """Send to an address taken from an inbound message (already a JID).

        Group and non-phone JIDs are passed through untouched.
        """
        transport = self._require_transport()
        text = (body or "")[: self._max_length]
        try:
            provider_id = await transport.send_text(address, text)
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(str(e) or type(e).__name__) from e
        logger.info(
            "reply sent",
            extra={"extra_fields": safe_log_context(to_hash=hash_identifier(address), text_len=len(text))},
        )
        return SentConfirmation(to=address, provider_message_id=provider_id)

    def _require_transport(self) -> Transport:
        snapshot = self._manager.current_state()
        if snapshot.state is ConnectionState.AUTH_FAILED:
            raise AuthFailure("Sesión de WhatsApp rechazada, reinicia la sesión")
        transport = self._manager.transport
        if not snapshot.ready or transport is None:
            raise NotConnected("WhatsApp no conectado")
        return transport
