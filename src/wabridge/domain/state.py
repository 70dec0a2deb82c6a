"""Connection state of the WhatsApp session."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ConnectionState(str, Enum):
    STARTING = "starting"
    AWAITING_QR = "awaiting_qr"
    CONNECTING = "connecting"
    READY = "ready"
    DISCONNECTED = "disconnected"
    AUTH_FAILED = "auth_failed"


@dataclass(frozen=True)
class ConnectionSnapshot:
    """Read-only view of the lifecycle, safe to hand to HTTP handlers.

    QR fields are only populated in AWAITING_QR; they are never set together
    with READY.
    """

    state: ConnectionState
    updated_at: datetime
    qr: str = ""
    qr_png: bytes | None = None
    qr_data_url: str = ""
    last_disconnect_reason: str | None = None
    last_error: str | None = None
    reconnect_attempts: int = 0
    ready_once: bool = False

    @property
    def ready(self) -> bool:
        return self.state is ConnectionState.READY

    @property
    def has_qr(self) -> bool:
        return bool(self.qr)
