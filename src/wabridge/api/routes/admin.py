"""Session control endpoints, gated by ADMIN_TOKEN."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from wabridge.domain.errors import BridgeError
from wabridge.observability.logging import get_logger

from ..admin_auth import require_admin
from ..dependencies import BotServices, get_services

router = APIRouter(tags=["admin"], dependencies=[Depends(require_admin)])

logger = get_logger(__name__)


@router.api_route("/logout", methods=["GET", "POST"])
async def logout(services: BotServices = Depends(get_services)) -> JSONResponse:
    """Drop the WhatsApp login; a new QR follows after the restart."""
    try:
        await services.manager.logout()
    except BridgeError as e:
        logger.error("logout failed", extra={"extra_fields": {"error": str(e)}})
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})
    return JSONResponse(content={"ok": True, "message": "Sesión cerrada, reiniciando cliente"})


@router.api_route("/restart", methods=["GET", "POST"])
async def restart(services: BotServices = Depends(get_services)) -> JSONResponse:
    logger.info("restart requested")
    await services.manager.restart()
    return JSONResponse(content={"ok": True, "message": "Reiniciando cliente"})
