"""Shared test doubles.

Regular classes and functions, not fixtures; conftest.py and test modules
import them directly.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from wabridge.whatsapp.models import InboundMessage
from wabridge.whatsapp.transport import EventSink, TransportEvent


class LogRecorder:
    """Simple recorder to capture log calls deterministically."""

    def __init__(self):
        self.calls: list[tuple[str, tuple, dict]] = []

    def _record(self, level: str, *args, **kwargs):
        self.calls.append((level, args, kwargs))

    def info(self, *args, **kwargs):
        self._record("info", *args, **kwargs)

    def warning(self, *args, **kwargs):
        self._record("warning", *args, **kwargs)

    def error(self, *args, **kwargs):
        self._record("error", *args, **kwargs)

    def exception(self, *args, **kwargs):
        self._record("exception", *args, **kwargs)

    def debug(self, *args, **kwargs):
        self._record("debug", *args, **kwargs)

    def get_all_logged_content(self) -> str:
        """Concatenate all args and kwargs from all calls into one string."""
        parts = []
        for _, args, kwargs in self.calls:
            parts.append(str(args))
            parts.append(str(kwargs))
        return " ".join(parts)

    def has_extra_field(self, key: str) -> bool:
        for _, _, kwargs in self.calls:
            extra = kwargs.get("extra", {})
            if key in extra.get("extra_fields", {}):
                return True
        return False

    def messages(self) -> list[str]:
        return [str(args[0]) for _, args, _ in self.calls if args]


class FakeTransport:
    """In-memory transport. Tests drive it by calling emit()."""

    def __init__(self, sink: EventSink, fail_initialize: Exception | None = None):
        self.sink = sink
        self.fail_initialize = fail_initialize
        self.fail_send: Exception | None = None
        self.initialized = False
        self.logged_out = False
        self.destroyed = False
        self.sent: list[tuple[str, str]] = []

    async def initialize(self) -> None:
        if self.fail_initialize is not None:
            raise self.fail_initialize
        self.initialized = True

    async def send_text(self, to: str, text: str) -> str | None:
        if self.fail_send is not None:
            raise self.fail_send
        self.sent.append((to, text))
        return f"wamid-{len(self.sent)}"

    async def logout(self) -> None:
        self.logged_out = True

    async def destroy(self) -> None:
        self.destroyed = True

    async def emit(self, event: TransportEvent) -> None:
        await self.sink(event)


class FakeTransportFactory:
    """Records every transport the lifecycle manager creates."""

    def __init__(self):
        self.created: list[FakeTransport] = []
        self.initialize_failures: list[Exception] = []

    def __call__(self, sink: EventSink) -> FakeTransport:
        failure = self.initialize_failures.pop(0) if self.initialize_failures else None
        transport = FakeTransport(sink, fail_initialize=failure)
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]


def make_message(
    body: str = "hola",
    sender: str = "5215512345678@c.us",
    kind: str = "text",
    media: bytes | None = None,
    media_mimetype: str | None = None,
    message_id: str = "3EB0C767D26A1D8E",
) -> InboundMessage:
    return InboundMessage(
        message_id=message_id,
        sender=sender,
        recipient="5215599999999@c.us",
        body=body,
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        kind=kind,  # type: ignore[arg-type]
        has_media=media is not None,
        media=media,
        media_mimetype=media_mimetype,
    )


async def drain(rounds: int = 5) -> None:
    """Let pending tasks run a few loop iterations."""
    for _ in range(rounds):
        await asyncio.sleep(0)
