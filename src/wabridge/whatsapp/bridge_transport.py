"""WhatsApp Web bridge transport.

The browser/socket session (whatsapp-web.js or Baileys) runs in a sidecar
bridge process that keeps the login on disk. This transport speaks the
bridge's JSON frame protocol over a websocket.

Frames received (``type`` field):
    qr {qr}, authenticated, ready, status {status}, loading {percent, message},
    disconnected {reason}, auth_failure {message}, message {data},
    sent {requestId, id}, error {requestId?, error}

Frames sent:
    auth {token}, init, send {requestId, to, text}, logout

Security: NEVER log destinations or message text.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from typing import Any

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException

from wabridge.domain.errors import TransportError
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import hash_identifier, safe_log_context

from .bridge_adapter import InvalidPayloadError, is_from_self, normalize
from .transport import (
    Authenticated,
    AuthFailed,
    Disconnected,
    EventSink,
    LoadingProgress,
    MessageReceived,
    QrIssued,
    Ready,
    TransportEvent,
)

logger = get_logger(__name__)

# Seconds to wait for the websocket handshake
CONNECT_TIMEOUT = 10.0

# Seconds to wait for the bridge to acknowledge a send
SEND_TIMEOUT = 30.0


def _error_message(raw: Any) -> str:
    if isinstance(raw, dict):
        error = raw.get("error")
        if isinstance(error, dict):
            message = str(error.get("message") or "").strip()
            if message:
                return message
        if isinstance(error, str) and error.strip():
            return error.strip()
        text = str(raw.get("message") or "").strip()
        if text:
            return text
    return str(raw or "bridge error")


def _percent(raw: Any) -> int:
    """Loading percentage clamped to 0..100; unparseable values read as 0."""
    try:
        value = int(float(str(raw).strip().rstrip("%")))
    except (TypeError, ValueError, OverflowError):
        return 0
    return max(0, min(100, value))


class BridgeTransport:
    """Transport backed by a websocket connection to the bridge sidecar."""

    def __init__(
        self,
        sink: EventSink,
        *,
        url: str,
        token: str = "",
        connect: Any = None,
        send_timeout: float = SEND_TIMEOUT,
    ) -> None:
        self._sink = sink
        self._url = url
        self._token = token
        self._connect = connect or websockets.connect
        self._send_timeout = send_timeout
        self._ws: Any = None
        self._reader: asyncio.Task[None] | None = None
        self._pending: dict[str, asyncio.Future[dict[str, Any]]] = {}
        self._closing = False

    async def initialize(self) -> None:
        try:
            self._ws = await self._connect(self._url, open_timeout=CONNECT_TIMEOUT)
            if self._token:
                await self._ws.send(json.dumps({"type": "auth", "token": self._token}))
            await self._ws.send(json.dumps({"type": "init"}))
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            raise TransportError(f"bridge connect failed: {e}") from e

        self._reader = asyncio.create_task(self._read_loop(), name="wa-bridge-reader")
        logger.info("bridge connected", extra={"extra_fields": {"url": self._url}})

    async def _read_loop(self) -> None:
        reason = "bridge connection closed"
        try:
            async for raw in self._ws:
                try:
                    await self._handle_frame(raw)
                except Exception:
                    logger.exception("bridge frame handling failed")
        except ConnectionClosed as e:
            reason = f"bridge connection closed ({e.rcvd.code if e.rcvd else 'no close frame'})"
        except (OSError, WebSocketException) as e:
            reason = f"bridge connection lost: {e}"
        finally:
            self._fail_pending(TransportError(reason))

        if not self._closing:
            await self._emit(Disconnected(reason=reason))

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()

    async def _emit(self, event: TransportEvent) -> None:
        if self._closing:
            return
        try:
            await self._sink(event)
        except Exception:
            logger.exception(
                "transport event handler failed",
                extra={"extra_fields": {"event": type(event).__name__}},
            )

    async def _handle_frame(self, raw: str | bytes) -> None:
        try:
            frame = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("bridge sent non-json frame")
            return
        if not isinstance(frame, dict):
            logger.warning("bridge sent non-object frame")
            return

        kind = frame.get("type")

        if kind in ("sent", "error") and frame.get("requestId"):
            self._resolve(frame)
            return

        if kind == "qr":
            await self._emit(QrIssued(qr=str(frame.get("qr") or "")))
        elif kind == "authenticated":
            await self._emit(Authenticated())
        elif kind == "ready" or (kind == "status" and frame.get("status") == "connected"):
            await self._emit(Ready())
        elif kind == "status":
            logger.info("bridge state", extra={"extra_fields": {"state": frame.get("status")}})
        elif kind == "loading":
            await self._emit(
                LoadingProgress(percent=_percent(frame.get("percent")), message=str(frame.get("message") or ""))
            )
        elif kind == "disconnected":
            await self._emit(Disconnected(reason=str(frame.get("reason") or "")))
        elif kind == "auth_failure":
            await self._emit(AuthFailed(message=_error_message(frame)))
        elif kind == "message":
            data = frame.get("data")
            if not isinstance(data, dict):
                logger.warning("bridge message frame without data object")
                return
            await self._handle_message(data)
        elif kind == "error":
            logger.error("bridge error", extra={"extra_fields": {"error": _error_message(frame)}})
        else:
            logger.debug("bridge frame ignored", extra={"extra_fields": {"type": str(kind)}})

    async def _handle_message(self, data: dict[str, Any]) -> None:
        if is_from_self(data):
            return
        try:
            message = normalize(data)
        except InvalidPayloadError as e:
            logger.warning("invalid bridge message frame", extra={"extra_fields": {"error": str(e)}})
            return
        await self._emit(MessageReceived(message=message))

    def _resolve(self, frame: dict[str, Any]) -> None:
        future = self._pending.pop(str(frame["requestId"]), None)
        if future is None or future.done():
            return
        if frame.get("type") == "sent":
            future.set_result(frame)
        else:
            future.set_exception(TransportError(_error_message(frame)))

    async def send_text(self, to: str, text: str) -> str | None:
        if self._ws is None:
            raise TransportError("bridge not connected")

        request_id = uuid.uuid4().hex
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        log_ctx = safe_log_context(request_id=request_id, to_hash=hash_identifier(to), text_len=len(text))
        logger.info("sending via bridge", extra={"extra_fields": log_ctx})

        try:
            await self._ws.send(json.dumps({"type": "send", "requestId": request_id, "to": to, "text": text}))
            ack = await asyncio.wait_for(future, timeout=self._send_timeout)
        except asyncio.TimeoutError:
            raise TransportError("bridge did not acknowledge the send in time") from None
        except (ConnectionClosed, WebSocketException) as e:
            raise TransportError(f"bridge connection lost: {e}") from e
        finally:
            self._pending.pop(request_id, None)

        provider_id = ack.get("id")
        return str(provider_id) if provider_id else None

    async def logout(self) -> None:
        if self._ws is None:
            return
        try:
            await self._ws.send(json.dumps({"type": "logout"}))
        except (ConnectionClosed, WebSocketException) as e:
            raise TransportError(f"bridge logout failed: {e}") from e

    async def destroy(self) -> None:
        self._closing = True
        if self._reader is not None:
            self._reader.cancel()
            try:
                await self._reader
            except asyncio.CancelledError:
                pass
            self._reader = None
        self._fail_pending(TransportError("transport destroyed"))
        if self._ws is not None:
            ws, self._ws = self._ws, None
            await ws.close()
