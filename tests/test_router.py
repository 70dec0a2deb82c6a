"""Tests for the command router and its backend client."""

import json

import httpx
import pytest

from wabridge.domain.errors import BackendUnavailable
from wabridge.infra.settings import BackendSettings
from wabridge.observability.correlation import CORRELATION_ID_HEADER, correlation_scope
from wabridge.services.backend import BackendClient, Reminder
from wabridge.services.router import UNRECOGNIZED, CommandRouter, format_backend_reply

SENDER = "5215512345678@c.us"

BACKEND_PATHS = {
    "save_note": "/notes/save",
    "recall_notes": "/notes/search",
    "list_notes": "/notes/list",
    "flush_pending": "/reminders/flush",
    "help": "/help",
}


class RecordingBackend:
    """httpx MockTransport handler that records requests and replies from a table."""

    def __init__(self, responses: dict[str, httpx.Response] | None = None):
        self.requests: list[httpx.Request] = []
        self.responses = responses or {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.get(request.url.path, httpx.Response(200, json={}))

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


def make_backend(handler, base_url: str = "http://backend.test/api") -> BackendClient:
    settings = BackendSettings(base_url=base_url, paths=dict(BACKEND_PATHS), timeout=1.0)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BackendClient(settings, client=client)


class TestCommandRouter:
    async def test_save_note_posts_action(self):
        handler = RecordingBackend({"/api/notes/save": httpx.Response(200, json={"reply": "Nota guardada 📝"})})
        router = CommandRouter(make_backend(handler))

        result = await router.route(SENDER, "guardar comprar leche")

        assert result.action == "save_note"
        assert result.ok
        assert result.reply == "Nota guardada 📝"
        assert handler.paths == ["/api/notes/save"]
        assert json.loads(handler.requests[0].content) == {
            "action": "save_note",
            "from": SENDER,
            "argument": "comprar leche",
        }

    async def test_list_notes_formats_bullets(self):
        handler = RecordingBackend(
            {"/api/notes/list": httpx.Response(200, json={"notes": [{"text": "comprar leche"}, "llamar a Ana"]})}
        )
        router = CommandRouter(make_backend(handler))

        result = await router.route(SENDER, "lista")

        assert result.action == "list_notes"
        assert result.reply == "Tus notas:\n• comprar leche\n• llamar a Ana"

    async def test_unrecognized_never_calls_backend(self):
        handler = RecordingBackend()
        router = CommandRouter(make_backend(handler))

        result = await router.route(SENDER, "hola")

        assert result is UNRECOGNIZED
        assert not result.recognized
        assert handler.requests == []

    async def test_backend_error_degrades_to_reply(self):
        handler = RecordingBackend({"/api/notes/search": httpx.Response(500, text="boom")})
        router = CommandRouter(make_backend(handler))

        result = await router.route(SENDER, "buscar leche")

        assert result.action == "recall_notes"
        assert not result.ok
        assert "buscar tus notas" in result.reply

    async def test_network_error_degrades_to_reply(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        router = CommandRouter(make_backend(handler))

        result = await router.route(SENDER, "ayuda")

        assert result.action == "help"
        assert not result.ok
        assert result.reply

    async def test_backend_not_configured(self):
        handler = RecordingBackend()
        router = CommandRouter(make_backend(handler, base_url=""))

        result = await router.route(SENDER, "guardar algo")

        assert not result.ok
        assert handler.requests == []


class TestFormatBackendReply:
    def test_prefers_reply_field(self):
        assert format_backend_reply({"reply": " ok ", "message": "other"}) == "ok"

    def test_message_field(self):
        assert format_backend_reply({"message": "Enviados 3 pendientes"}) == "Enviados 3 pendientes"

    def test_empty_notes(self):
        assert format_backend_reply({"notes": []}) == "No tienes notas guardadas todavía."

    def test_items_alias(self):
        assert format_backend_reply({"items": ["a"]}) == "Tus notas:\n• a"

    def test_no_known_fields(self):
        assert format_backend_reply({}) == "Listo ✅"


class TestBackendClient:
    async def test_sends_correlation_header(self):
        handler = RecordingBackend()
        backend = make_backend(handler)

        with correlation_scope("corr-123"):
            await backend.run_action("help", SENDER, "")

        assert handler.requests[0].headers[CORRELATION_ID_HEADER] == "corr-123"

    async def test_plain_text_response(self):
        handler = RecordingBackend({"/api/help": httpx.Response(200, text="Comandos: guardar, lista")})
        backend = make_backend(handler)

        data = await backend.run_action("help", SENDER, "")

        assert data == {"reply": "Comandos: guardar, lista"}

    async def test_list_response_wrapped(self):
        handler = RecordingBackend({"/api/notes/list": httpx.Response(200, json=["a", "b"])})
        backend = make_backend(handler)

        assert await backend.run_action("list_notes", SENDER, "") == {"items": ["a", "b"]}

    async def test_unknown_action(self):
        backend = make_backend(RecordingBackend())

        with pytest.raises(BackendUnavailable):
            await backend.run_action("delete_everything", SENDER, "")

    async def test_fetch_due_reminders_skips_malformed(self):
        payload = {
            "reminders": [
                {"phone": "5512345678", "text": "Clase de piano a las 5"},
                {"phone": "", "text": "sin teléfono"},
                "junk",
            ]
        }
        handler = RecordingBackend({"/api/reminders/due": httpx.Response(200, json=payload)})
        backend = make_backend(handler)

        reminders = await backend.fetch_due_reminders()

        assert reminders == [Reminder(phone="5512345678", text="Clase de piano a las 5")]

    async def test_ping(self):
        ok_backend = make_backend(RecordingBackend())
        failing_backend = make_backend(RecordingBackend({"/api/ping": httpx.Response(503)}))

        assert await ok_backend.ping() is True
        assert await failing_backend.ping() is False
