"""Connection lifecycle manager.

Owns the single transport session and the connection state machine:

    starting -> connecting -> awaiting_qr -> connecting -> ready
    any -> disconnected -> (delay) -> connecting
    any -> auth_failed            (terminal until restart/logout)

Every transport event maps to exactly one transition method. Only this class
writes the state; readers get immutable snapshots from current_state().

Reconnects never give up. The first retry waits the base delay, each further
consecutive attempt doubles it up to the cap, and reaching READY resets it.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from wabridge.domain.state import ConnectionSnapshot, ConnectionState
from wabridge.infra.time import utc_now
from wabridge.observability.correlation import correlation_scope
from wabridge.observability.logging import get_logger

from .models import InboundMessage
from .qr import png_data_url, render_png
from .transport import (
    Authenticated,
    AuthFailed,
    Disconnected,
    EventSink,
    LoadingProgress,
    MessageReceived,
    QrIssued,
    Ready,
    Transport,
    TransportEvent,
    TransportFactory,
)

logger = get_logger(__name__)

MessageCallback = Callable[[InboundMessage], Awaitable[None]]

DEFAULT_RECONNECT_DELAY = 6.0
DEFAULT_RECONNECT_MAX_DELAY = 60.0

# Delays used by the admin endpoints
LOGOUT_RESTART_DELAY = 1.5
RESTART_DELAY = 0.5


class LifecycleManager:
    """Single owner of the WhatsApp session and its state."""

    def __init__(
        self,
        transport_factory: TransportFactory,
        *,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        reconnect_max_delay: float = DEFAULT_RECONNECT_MAX_DELAY,
        on_message: MessageCallback | None = None,
        qr_renderer: Callable[[str], bytes] = render_png,
    ) -> None:
        self._factory = transport_factory
        self._reconnect_delay = reconnect_delay
        self._reconnect_max_delay = max(reconnect_max_delay, reconnect_delay)
        self._on_message = on_message
        self._qr_renderer = qr_renderer

        self._transport: Transport | None = None
        self._generation = 0
        self._start_lock = asyncio.Lock()
        self._reconnect_task: asyncio.Task[None] | None = None
        self._message_tasks: set[asyncio.Task[None]] = set()
        self._stopped = False

        self._state = ConnectionState.STARTING
        self._updated_at = utc_now()
        self._qr = ""
        self._qr_png: bytes | None = None
        self._qr_data_url = ""
        self._last_disconnect_reason: str | None = None
        self._last_error: str | None = None
        self._reconnect_attempts = 0
        self._ready_once = False

        self._transitions: dict[type, Callable[[object], Awaitable[None]]] = {
            QrIssued: self._on_qr,
            Authenticated: self._on_authenticated,
            Ready: self._on_ready,
            Disconnected: self._on_disconnected,
            AuthFailed: self._on_auth_failed,
            MessageReceived: self._on_message_received,
            LoadingProgress: self._on_loading,
        }

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def transport(self) -> Transport | None:
        return self._transport

    def current_state(self) -> ConnectionSnapshot:
        return ConnectionSnapshot(
            state=self._state,
            updated_at=self._updated_at,
            qr=self._qr,
            qr_png=self._qr_png,
            qr_data_url=self._qr_data_url,
            last_disconnect_reason=self._last_disconnect_reason,
            last_error=self._last_error,
            reconnect_attempts=self._reconnect_attempts,
            ready_once=self._ready_once,
        )

    def next_reconnect_delay(self) -> float:
        """Delay before the next reconnect attempt (capped exponential)."""
        return min(self._reconnect_delay * (2**self._reconnect_attempts), self._reconnect_max_delay)

    def set_message_handler(self, callback: MessageCallback | None) -> None:
        self._on_message = callback

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Release any existing session and start a fresh one.

        Returns once the transport has been asked to initialize. An
        initialize failure is logged and turned into a scheduled reconnect.
        """
        async with self._start_lock:
            self._stopped = False
            self._cancel_reconnect()
            await self._release_transport()

            self._generation += 1
            generation = self._generation
            self._clear_qr()
            self._set_state(ConnectionState.CONNECTING)

            transport = self._factory(self._sink_for(generation))
            self._transport = transport

            try:
                await transport.initialize()
            except Exception as e:
                if generation != self._generation:
                    return
                logger.error(
                    "transport initialize failed",
                    extra={"extra_fields": {"error": str(e), "error_type": type(e).__name__}},
                )
                self._last_error = str(e) or type(e).__name__
                self._set_state(ConnectionState.DISCONNECTED)
                self._schedule_reconnect()

    async def restart(self, delay: float = RESTART_DELAY) -> None:
        """Operator restart: start again after ``delay`` seconds, with fresh backoff."""
        self._cancel_reconnect()
        self._reconnect_attempts = 0
        self._reconnect_task = asyncio.create_task(self._start_after(delay), name="wa-restart")

    async def logout(self) -> None:
        """Ask the transport to drop the WhatsApp login, then restart.

        Raises:
            TransportError: If the transport refuses the logout.
        """
        if self._transport is not None:
            await self._transport.logout()
        logger.info("logout requested, restarting session")
        await self.restart(LOGOUT_RESTART_DELAY)

    async def shutdown(self, grace: float = 5.0) -> None:
        """Release everything on process termination. Never raises."""
        self._stopped = True
        self._cancel_reconnect()

        pending = [t for t in self._message_tasks if not t.done()]
        if pending:
            await asyncio.wait(pending, timeout=grace)

        await self._release_transport()
        self._clear_qr()
        self._last_disconnect_reason = "shutdown"
        self._set_state(ConnectionState.DISCONNECTED)

    # ------------------------------------------------------------------
    # Event intake
    # ------------------------------------------------------------------

    def _sink_for(self, generation: int) -> EventSink:
        async def sink(event: TransportEvent) -> None:
            if generation != self._generation:
                logger.debug(
                    "stale transport event dropped",
                    extra={"extra_fields": {"event": type(event).__name__}},
                )
                return
            await self.handle_event(event)

        return sink

    async def handle_event(self, event: TransportEvent) -> None:
        """Apply one transport event. Exceptions are logged, never raised."""
        transition = self._transitions.get(type(event))
        if transition is None:
            logger.warning("unknown transport event", extra={"extra_fields": {"event": type(event).__name__}})
            return
        try:
            await transition(event)
        except Exception:
            logger.exception(
                "transport event handling failed",
                extra={"extra_fields": {"event": type(event).__name__}},
            )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _on_qr(self, event: QrIssued) -> None:
        self._qr = event.qr
        self._qr_png = None
        self._qr_data_url = ""
        try:
            self._qr_png = self._qr_renderer(event.qr)
            self._qr_data_url = png_data_url(self._qr_png)
        except Exception as e:
            logger.error("qr render failed", extra={"extra_fields": {"error": str(e)}})
        self._set_state(ConnectionState.AWAITING_QR)
        logger.info("new QR code issued")

    async def _on_authenticated(self, event: Authenticated) -> None:
        self._clear_qr()
        self._set_state(ConnectionState.CONNECTING)
        logger.info("session authenticated")

    async def _on_ready(self, event: Ready) -> None:
        if self._state is ConnectionState.AUTH_FAILED:
            logger.info("ready after auth failure ignored")
            return
        self._clear_qr()
        self._reconnect_attempts = 0
        self._ready_once = True
        self._last_error = None
        self._set_state(ConnectionState.READY)

    async def _on_disconnected(self, event: Disconnected) -> None:
        if self._state is ConnectionState.AUTH_FAILED:
            logger.info("disconnect after auth failure ignored")
            return
        self._clear_qr()
        self._last_disconnect_reason = event.reason or None
        self._set_state(ConnectionState.DISCONNECTED)
        logger.warning("session disconnected", extra={"extra_fields": {"reason": event.reason}})
        self._schedule_reconnect()

    async def _on_auth_failed(self, event: AuthFailed) -> None:
        self._cancel_reconnect()
        self._clear_qr()
        self._last_error = event.message or "authentication failed"
        self._set_state(ConnectionState.AUTH_FAILED)
        logger.error(
            "authentication failed, operator restart required",
            extra={"extra_fields": {"error": self._last_error}},
        )

    async def _on_message_received(self, event: MessageReceived) -> None:
        if self._on_message is None:
            return
        task = asyncio.create_task(self._run_message_callback(event.message))
        self._message_tasks.add(task)
        task.add_done_callback(self._message_tasks.discard)

    async def _on_loading(self, event: LoadingProgress) -> None:
        logger.info(
            "session loading",
            extra={"extra_fields": {"percent": event.percent, "detail": event.message}},
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_message_callback(self, message: InboundMessage) -> None:
        with correlation_scope():
            try:
                await self._on_message(message)  # type: ignore[misc]
            except Exception:
                logger.exception("inbound message handler failed")

    def _set_state(self, state: ConnectionState) -> None:
        previous = self._state
        self._state = state
        self._updated_at = utc_now()
        if previous is not state:
            logger.info(
                "connection state changed",
                extra={"extra_fields": {"from": previous.value, "to": state.value}},
            )

    def _clear_qr(self) -> None:
        self._qr = ""
        self._qr_png = None
        self._qr_data_url = ""

    def _schedule_reconnect(self) -> None:
        if self._stopped:
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        delay = self.next_reconnect_delay()
        self._reconnect_attempts += 1
        logger.info(
            "reconnect scheduled",
            extra={"extra_fields": {"delay_seconds": delay, "attempt": self._reconnect_attempts}},
        )
        self._reconnect_task = asyncio.create_task(self._start_after(delay), name="wa-reconnect")

    def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _start_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._stopped:
            return
        logger.info("starting session")
        await self.start()

    async def _release_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is None:
            return
        # Anything the old transport still emits is stale from here on
        self._generation += 1
        try:
            await transport.destroy()
        except Exception as e:
            logger.warning("transport release failed", extra={"extra_fields": {"error": str(e)}})
