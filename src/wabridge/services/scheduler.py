"""Keep-alive and reminder delivery loop.

Runs inside the API lifespan. Every interval it pings the backend and, when
the session is ready, sends each due reminder with a pause between sends so
WhatsApp does not flag the account for spam.
"""

from __future__ import annotations

import asyncio

from wabridge.domain.errors import BackendUnavailable, InvalidAddress, NotConnected, TransportError
from wabridge.observability.correlation import correlation_scope
from wabridge.observability.logging import get_logger
from wabridge.whatsapp.lifecycle import LifecycleManager
from wabridge.whatsapp.outbound import SendGateway
from wabridge.whatsapp.templates import render

from .backend import BackendClient

logger = get_logger(__name__)

# Pause after an unexpected cycle error before the next regular wait
ERROR_BACKOFF_SECONDS = 30.0


class ReminderScheduler:
    def __init__(
        self,
        *,
        backend: BackendClient,
        gateway: SendGateway,
        manager: LifecycleManager,
        interval: float,
        send_delay: float,
    ) -> None:
        self._backend = backend
        self._gateway = gateway
        self._manager = manager
        self._interval = interval
        self._send_delay = send_delay
        self._task: asyncio.Task[None] | None = None

    async def run_cycle(self) -> int:
        """One keep-alive + reminder pass. Returns number of reminders sent."""
        if not self._backend.enabled:
            logger.info("keep-alive tick (no backend configured)")
            return 0

        alive = await self._backend.ping()
        logger.info("keep-alive tick", extra={"extra_fields": {"backend_alive": alive}})

        if not self._manager.current_state().ready:
            logger.info("reminder check skipped, session not ready")
            return 0

        try:
            reminders = await self._backend.fetch_due_reminders()
        except BackendUnavailable as e:
            logger.warning("reminder fetch failed", extra={"extra_fields": {"error": str(e)}})
            return 0

        sent = 0
        for index, reminder in enumerate(reminders):
            if index > 0:
                await asyncio.sleep(self._send_delay)
            try:
                await self._gateway.send(reminder.phone, render("reminder", {"text": reminder.text}))
            except InvalidAddress:
                logger.warning("reminder skipped, invalid phone", extra={"extra_fields": {"index": index}})
                continue
            except NotConnected:
                logger.warning(
                    "reminder delivery interrupted, session not ready",
                    extra={"extra_fields": {"remaining": len(reminders) - index}},
                )
                break
            except TransportError as e:
                logger.error("reminder send failed", extra={"extra_fields": {"index": index, "error": str(e)}})
                continue
            sent += 1

        if reminders:
            logger.info("reminders delivered", extra={"extra_fields": {"sent": sent, "due": len(reminders)}})
        return sent

    async def run_forever(self) -> None:
        """Never exits normally; errors are logged and the loop continues."""
        logger.info("scheduler started", extra={"extra_fields": {"interval_seconds": self._interval}})
        while True:
            await asyncio.sleep(self._interval)
            try:
                with correlation_scope():
                    await self.run_cycle()
            except asyncio.CancelledError:
                logger.info("scheduler cancelled")
                raise
            except Exception:
                logger.exception("scheduler cycle failed")
                await asyncio.sleep(ERROR_BACKOFF_SECONDS)

    def start(self) -> asyncio.Task[None]:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="reminder-scheduler")
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
