"""Operator send endpoint.

Maps gateway errors to HTTP status:
- InvalidAddress -> 400
- NotConnected -> 503
- TransportError -> 500
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from wabridge.domain.errors import InvalidAddress, NotConnected, TransportError
from wabridge.observability.logging import get_logger

from ..dependencies import BotServices, get_services

router = APIRouter(prefix="/send", tags=["send"])

logger = get_logger(__name__)

DEFAULT_TEXT = "Mensaje de prueba"


class OutboundRequest(BaseModel):
    phone: str = ""
    text: str = DEFAULT_TEXT


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


async def _send(services: BotServices, phone: str, text: str) -> JSONResponse:
    try:
        confirmation = await services.gateway.send(phone, text or DEFAULT_TEXT)
    except InvalidAddress as e:
        return _error(400, str(e))
    except NotConnected as e:
        return _error(503, str(e))
    except TransportError as e:
        logger.error("send endpoint failed", extra={"extra_fields": {"error": str(e)}})
        return _error(500, str(e))

    return JSONResponse(content={"ok": True, "to": confirmation.to, "sent": True})


@router.get("")
async def send_get(
    phone: str = "",
    text: str = DEFAULT_TEXT,
    services: BotServices = Depends(get_services),
) -> JSONResponse:
    return await _send(services, phone, text)


@router.post("")
async def send_post(
    body: OutboundRequest,
    services: BotServices = Depends(get_services),
) -> JSONResponse:
    return await _send(services, body.phone, body.text)
