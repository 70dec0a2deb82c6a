"""Transport abstraction for the WhatsApp session.

A transport owns the provider connection (browser, socket or bridge) and
reports what happens to it as events. The events form a closed set; the
lifecycle manager maps each one to a single state transition.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Protocol, Union

from wabridge.domain.errors import TransportError

from .models import InboundMessage


@dataclass(frozen=True)
class QrIssued:
    qr: str


@dataclass(frozen=True)
class Authenticated:
    pass


@dataclass(frozen=True)
class Ready:
    pass


@dataclass(frozen=True)
class Disconnected:
    reason: str = ""


@dataclass(frozen=True)
class AuthFailed:
    message: str = ""


@dataclass(frozen=True)
class MessageReceived:
    message: InboundMessage


@dataclass(frozen=True)
class LoadingProgress:
    """Informational only: no state change."""

    percent: int
    message: str = ""


TransportEvent = Union[QrIssued, Authenticated, Ready, Disconnected, AuthFailed, MessageReceived, LoadingProgress]

EventSink = Callable[[TransportEvent], Awaitable[None]]


class Transport(Protocol):
    """One provider session. Never reused after destroy()."""

    async def initialize(self) -> None:
        """Begin connecting. Returns once the request is issued; progress arrives as events."""
        ...

    async def send_text(self, to: str, text: str) -> str | None:
        """Submit one text message. Returns provider message id if known.

        Raises:
            TransportError: On provider/network failure.
        """
        ...

    async def logout(self) -> None:
        """Drop the stored WhatsApp session so the next start asks for a new QR."""
        ...

    async def destroy(self) -> None:
        """Release the connection. Events must stop after this returns."""
        ...


TransportFactory = Callable[[EventSink], Transport]


class DisabledTransport:
    """Transport used when WhatsApp is switched off (WA_TRANSPORT=disabled).

    Initializes without emitting anything, so the bot stays in CONNECTING and
    every send fails.
    """

    def __init__(self, sink: EventSink) -> None:
        self._sink = sink

    async def initialize(self) -> None:
        return None

    async def send_text(self, to: str, text: str) -> str | None:
        raise TransportError("WhatsApp transport is disabled")

    async def logout(self) -> None:
        return None

    async def destroy(self) -> None:
        return None
