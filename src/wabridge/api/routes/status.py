"""Machine-readable status and health endpoints."""

from fastapi import APIRouter, Depends

from wabridge.infra.time import process_uptime

from ..dependencies import BotServices, get_services

router = APIRouter(tags=["status"])


@router.get("/status")
def status(services: BotServices = Depends(get_services)) -> dict:
    snapshot = services.manager.current_state()
    return {
        "ok": True,
        "status": snapshot.state.value,
        "ready": snapshot.ready,
        "phpWebhook": services.forwarder.url if services.forwarder.enabled else None,
        "hasQR": snapshot.has_qr,
        "lastDisconnectReason": snapshot.last_disconnect_reason,
        "env": {
            "environment": services.settings.environment,
            "port": services.settings.port,
        },
    }


@router.get("/health")
def health(services: BotServices = Depends(get_services)) -> dict:
    """Liveness probe. Always 200 while the process serves requests."""
    snapshot = services.manager.current_state()
    return {
        "ok": True,
        "uptime": round(process_uptime(), 3),
        "status": snapshot.state.value,
        "ready": snapshot.ready,
        "phpWebhook": services.forwarder.url if services.forwarder.enabled else None,
        "hasQR": snapshot.has_qr,
    }
