"""Tests for the HTTP surface: panel, status, send and admin endpoints."""

import pytest
from fastapi.testclient import TestClient

from wabridge.api.factory import create_app
from wabridge.domain.errors import TransportError
from wabridge.infra.settings import BotSettings
from wabridge.whatsapp.transport import AuthFailed, QrIssued, Ready

ADMIN_TOKEN = "s3cret"


@pytest.fixture
def client(transport_factory):
    settings = BotSettings(
        php_api_url="http://php.test/api/whatsapp-webhook.php",
        enable_incoming_webhook=True,
        admin_token=ADMIN_TOKEN,
        reminder_interval=3600.0,
        environment="test",
        port=3100,
    )
    app = create_app(settings=settings, transport_factory=transport_factory)
    with TestClient(app) as client:
        yield client


def emit(client, transport_factory, event):
    """Deliver a transport event on the app's event loop."""
    client.portal.call(transport_factory.latest.emit, event)


class TestStatus:
    def test_status_before_ready(self, client):
        data = client.get("/status").json()

        assert data == {
            "ok": True,
            "status": "connecting",
            "ready": False,
            "phpWebhook": "http://php.test/api/whatsapp-webhook.php",
            "hasQR": False,
            "lastDisconnectReason": None,
            "env": {"environment": "test", "port": 3100},
        }

    def test_health(self, client, transport_factory):
        emit(client, transport_factory, Ready())
        data = client.get("/health").json()

        assert data["ok"] is True
        assert data["ready"] is True
        assert data["status"] == "ready"
        assert data["uptime"] >= 0
        assert data["hasQR"] is False


class TestPanel:
    def test_waiting_for_qr(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert "Generando código QR" in response.text
        assert 'http-equiv="refresh"' in response.text

    def test_qr_shown(self, client, transport_factory):
        emit(client, transport_factory, QrIssued(qr="2@Zx9k1Q,abcDEF=="))

        page = client.get("/").text
        assert "data:image/png;base64," in page
        assert "Esperando escaneo" in page

        png = client.get("/qr.png")
        assert png.status_code == 200
        assert png.headers["content-type"] == "image/png"
        assert png.content.startswith(b"\x89PNG")

        data = client.get("/qr").json()
        assert data["status"] == "awaiting_qr"
        assert data["qr"] == "2@Zx9k1Q,abcDEF=="
        assert data["qrDataUrl"].startswith("data:image/png;base64,")

    def test_no_qr(self, client):
        assert client.get("/qr.png").status_code == 404
        assert client.get("/qr").json() == {"status": "connecting", "qr": None, "qrDataUrl": None}

    def test_ready_page(self, client, transport_factory):
        emit(client, transport_factory, QrIssued(qr="token"))
        emit(client, transport_factory, Ready())

        page = client.get("/").text
        assert "Conectado" in page
        assert 'action="/send"' in page
        assert 'http-equiv="refresh"' not in page
        assert client.get("/qr.png").status_code == 404


class TestSend:
    def test_not_connected(self, client, transport_factory):
        response = client.get("/send", params={"phone": "5512345678", "text": "hola"})

        assert response.status_code == 503
        assert response.json() == {"ok": False, "error": "WhatsApp no conectado"}
        assert transport_factory.latest.sent == []

    def test_auth_failed_is_service_unavailable(self, client, transport_factory):
        emit(client, transport_factory, AuthFailed(message="rejected"))

        response = client.post("/send", json={"phone": "5512345678", "text": "hola"})

        assert response.status_code == 503
        assert response.json()["ok"] is False

    def test_get_send(self, client, transport_factory):
        emit(client, transport_factory, Ready())

        response = client.get("/send", params={"phone": "55 1234 5678", "text": "hola"})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "to": "525512345678@c.us", "sent": True}
        assert transport_factory.latest.sent == [("525512345678@c.us", "hola")]

    def test_post_send_default_text(self, client, transport_factory):
        emit(client, transport_factory, Ready())

        response = client.post("/send", json={"phone": "5512345678"})

        assert response.status_code == 200
        assert transport_factory.latest.sent[0][1] == "Mensaje de prueba"

    def test_invalid_phone(self, client, transport_factory):
        emit(client, transport_factory, Ready())

        response = client.post("/send", json={"phone": "123", "text": "hola"})

        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_transport_error(self, client, transport_factory):
        emit(client, transport_factory, Ready())
        transport_factory.latest.fail_send = TransportError("Evaluation failed: page crashed")

        response = client.get("/send", params={"phone": "5512345678"})

        assert response.status_code == 500
        assert response.json() == {"ok": False, "error": "Evaluation failed: page crashed"}


class TestAdmin:
    @pytest.mark.parametrize("path", ["/logout", "/restart"])
    @pytest.mark.parametrize("method", ["get", "post"])
    def test_requires_token(self, client, path, method):
        response = getattr(client, method)(path)

        assert response.status_code == 401
        assert response.json() == {"ok": False, "error": "Unauthorized"}

    def test_wrong_token(self, client):
        response = client.post("/restart", headers={"X-Admin-Token": "nope"})
        assert response.status_code == 401

    def test_restart_with_header(self, client):
        response = client.post("/restart", headers={"X-Admin-Token": ADMIN_TOKEN})

        assert response.status_code == 200
        assert response.json()["ok"] is True

    def test_logout_with_query_token(self, client, transport_factory):
        emit(client, transport_factory, Ready())

        response = client.get("/logout", params={"token": ADMIN_TOKEN})

        assert response.status_code == 200
        assert response.json()["ok"] is True
        assert transport_factory.latest.logged_out
