"""Fire-and-forget relay of inbound message metadata to the PHP webhook.

At-most-once: no retry, no queue. Failures are logged and dropped.
"""

from __future__ import annotations

import httpx

from wabridge.observability.correlation import CORRELATION_ID_HEADER, get_correlation_id
from wabridge.observability.logging import get_logger
from wabridge.whatsapp.models import InboundMessage

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 5.0


class WebhookForwarder:
    def __init__(
        self,
        url: str,
        *,
        enabled: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._enabled = enabled and bool(url)
        self._timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def url(self) -> str:
        return self._url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def forward(self, message: InboundMessage) -> bool:
        """POST the message metadata. Returns True on 2xx, never raises."""
        if not self._enabled:
            return False
        try:
            response = await self._client.post(
                self._url,
                json=message.webhook_payload(),
                headers={CORRELATION_ID_HEADER: get_correlation_id()},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "webhook forward failed",
                extra={"extra_fields": {"error_type": type(e).__name__, "error": str(e)}},
            )
            return False
        except Exception:
            logger.exception("webhook forward failed unexpectedly")
            return False

        logger.info("webhook forwarded", extra={"extra_fields": {"status_code": response.status_code}})
        return True
