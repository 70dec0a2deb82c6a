"""FastAPI application factory.

The lifespan wires the bot services, starts the WhatsApp session and the
reminder scheduler, and releases both on shutdown (SIGTERM/SIGINT under
uvicorn).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from wabridge.infra.settings import BotSettings, load_settings
from wabridge.observability.correlation import (
    CORRELATION_ID_HEADER,
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from wabridge.observability.logging import configure_server_logging, get_logger
from wabridge.services.backend import BackendClient
from wabridge.services.message_handler import MessageHandler
from wabridge.services.responder import AIResponder
from wabridge.services.router import CommandRouter
from wabridge.services.scheduler import ReminderScheduler
from wabridge.services.transcription import Transcriber
from wabridge.services.webhook_forwarder import WebhookForwarder
from wabridge.whatsapp.bridge_transport import BridgeTransport
from wabridge.whatsapp.lifecycle import LifecycleManager
from wabridge.whatsapp.outbound import SendGateway
from wabridge.whatsapp.transport import DisabledTransport, EventSink, TransportFactory

from .admin_auth import AdminAuthError
from .dependencies import BotServices
from .rate_limit import RateLimiter, RateLimitMiddleware
from .routes import admin, panel, send, status

logger = get_logger(__name__)


def default_transport_factory(settings: BotSettings) -> TransportFactory:
    if settings.transport == "disabled":
        return DisabledTransport

    def factory(sink: EventSink) -> BridgeTransport:
        return BridgeTransport(sink, url=settings.bridge_url, token=settings.bridge_token)

    return factory


def build_services(settings: BotSettings, transport_factory: TransportFactory | None = None) -> BotServices:
    backend = BackendClient(settings.backend)
    forwarder = WebhookForwarder(
        settings.php_api_url,
        enabled=settings.enable_incoming_webhook,
        timeout=settings.webhook_timeout,
    )
    manager = LifecycleManager(
        transport_factory or default_transport_factory(settings),
        reconnect_delay=settings.reconnect_delay,
        reconnect_max_delay=settings.reconnect_max_delay,
    )
    gateway = SendGateway(
        manager,
        country_code=settings.default_country_code,
        jid_suffix=settings.jid_suffix,
    )
    handler = MessageHandler(
        router=CommandRouter(backend),
        gateway=gateway,
        forwarder=forwarder,
        responder=AIResponder(settings.llm),
        transcriber=Transcriber(settings.llm),
    )
    manager.set_message_handler(handler)
    scheduler = ReminderScheduler(
        backend=backend,
        gateway=gateway,
        manager=manager,
        interval=settings.reminder_interval,
        send_delay=settings.reminder_send_delay,
    )
    return BotServices(
        settings=settings,
        manager=manager,
        gateway=gateway,
        backend=backend,
        forwarder=forwarder,
        handler=handler,
        scheduler=scheduler,
    )


def create_app(
    settings: BotSettings | None = None,
    transport_factory: TransportFactory | None = None,
) -> FastAPI:
    """Create the FastAPI app.

    Args:
        settings: Explicit settings. If None, read from the environment.
        transport_factory: Override for the WhatsApp transport (tests).

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = load_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_server_logging()
        services = build_services(settings, transport_factory)
        app.state.services = services
        logger.info(
            "bot starting",
            extra={
                "extra_fields": {
                    "environment": settings.environment,
                    "port": settings.port,
                    "transport": settings.transport,
                    "webhook_enabled": services.forwarder.enabled,
                    "backend_enabled": services.backend.enabled,
                }
            },
        )
        await services.manager.start()
        services.scheduler.start()
        try:
            yield
        finally:
            logger.info("bot shutting down")
            await services.scheduler.stop()
            await services.manager.shutdown()
            await services.handler.aclose()
            await services.forwarder.aclose()
            await services.backend.aclose()

    app = FastAPI(
        title="WhatsApp Bridge Bot",
        docs_url=None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        RateLimitMiddleware,
        limiter=RateLimiter(settings.rate_limit_max_requests, settings.rate_limit_window),
        trust_proxy=settings.trust_proxy,
    )

    # Correlation ID middleware
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next) -> Response:
        cid = request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        token = set_correlation_id(cid)
        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = cid
            return response
        finally:
            reset_correlation_id(token)

    @app.exception_handler(AdminAuthError)
    async def admin_auth_error_handler(request: Request, exc: AdminAuthError) -> JSONResponse:
        logger.warning("admin request rejected", extra={"extra_fields": {"path": request.url.path}})
        return JSONResponse(status_code=401, content={"ok": False, "error": "Unauthorized"})

    app.include_router(panel.router)
    app.include_router(status.router)
    app.include_router(send.router)
    app.include_router(admin.router)

    return app
