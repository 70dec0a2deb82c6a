"""Operator panel: HTML page plus the pending login QR as PNG and JSON."""

from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, JSONResponse, Response

from wabridge.domain.state import ConnectionSnapshot, ConnectionState

from ..dependencies import BotServices, get_services

router = APIRouter(tags=["panel"])

# Seconds between page reloads while the session is not ready
REFRESH_SECONDS = 5

STATE_LABELS: dict[ConnectionState, str] = {
    ConnectionState.STARTING: "Iniciando",
    ConnectionState.AWAITING_QR: "Esperando escaneo del código QR",
    ConnectionState.CONNECTING: "Conectando",
    ConnectionState.READY: "Conectado",
    ConnectionState.DISCONNECTED: "Desconectado, reintentando",
    ConnectionState.AUTH_FAILED: "Error de autenticación, reinicia la sesión",
}

PAGE = """<!doctype html>
<html lang="es">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
{refresh}<title>WhatsApp Bot</title>
<style>
body {{ font-family: system-ui, sans-serif; max-width: 640px; margin: 2rem auto; padding: 0 1rem; }}
.status {{ padding: .75rem 1rem; border-radius: 8px; background: #f1f3f4; }}
.status.ready {{ background: #d4f8d4; }}
.qr img {{ width: 100%; max-width: 360px; }}
.placeholder {{ padding: 3rem; text-align: center; border: 2px dashed #ccc; border-radius: 8px; }}
form {{ display: grid; gap: .5rem; margin-top: 1rem; }}
</style>
</head>
<body>
<h1>WhatsApp Bot</h1>
<p class="status{ready_class}">Estado: <strong>{label}</strong></p>
{body}
</body>
</html>
"""

QR_BLOCK = """<div class="qr">
<p>Escanea este código desde WhatsApp &gt; Dispositivos vinculados.</p>
<img src="{data_url}" alt="Código QR">
</div>"""

WAITING_BLOCK = """<div class="placeholder">Generando código QR...</div>"""

READY_BLOCK = """<form method="get" action="/send">
<input name="phone" placeholder="Teléfono (10 dígitos o con lada)" required>
<input name="text" placeholder="Mensaje" value="Mensaje de prueba">
<button type="submit">Enviar</button>
</form>
<p><a href="/status">Estado JSON</a></p>
<form method="get" action="/restart">
<input name="token" type="password" placeholder="Token de administrador" required>
<button type="submit" formaction="/restart">Reiniciar</button>
<button type="submit" formaction="/logout">Cerrar sesión</button>
</form>"""


def render_page(snapshot: ConnectionSnapshot) -> str:
    if snapshot.ready:
        body = READY_BLOCK
    elif snapshot.qr_data_url:
        body = QR_BLOCK.format(data_url=escape(snapshot.qr_data_url, quote=True))
    elif snapshot.state is ConnectionState.AUTH_FAILED:
        body = ""
    else:
        body = WAITING_BLOCK

    if snapshot.last_error and not snapshot.ready:
        body += f"\n<p>Último error: {escape(snapshot.last_error)}</p>"

    return PAGE.format(
        refresh="" if snapshot.ready else f'<meta http-equiv="refresh" content="{REFRESH_SECONDS}">\n',
        ready_class=" ready" if snapshot.ready else "",
        label=escape(STATE_LABELS[snapshot.state]),
        body=body,
    )


@router.get("/", response_class=HTMLResponse)
def index(services: BotServices = Depends(get_services)) -> HTMLResponse:
    return HTMLResponse(render_page(services.manager.current_state()))


@router.get("/qr.png")
def qr_png(services: BotServices = Depends(get_services)) -> Response:
    snapshot = services.manager.current_state()
    if not snapshot.qr_png:
        return JSONResponse(status_code=404, content={"ok": False, "error": "No hay código QR disponible"})
    return Response(content=snapshot.qr_png, media_type="image/png", headers={"Cache-Control": "no-store"})


@router.get("/qr")
def qr_json(services: BotServices = Depends(get_services)) -> dict:
    snapshot = services.manager.current_state()
    return {
        "status": snapshot.state.value,
        "qr": snapshot.qr or None,
        "qrDataUrl": snapshot.qr_data_url or None,
    }
