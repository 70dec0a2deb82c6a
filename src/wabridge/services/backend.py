"""HTTP client for the external notes/reminders backend.

Every call uses a short timeout and raises BackendUnavailable on any failure;
callers decide how to degrade.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from wabridge.domain.errors import BackendUnavailable
from wabridge.infra.settings import BackendSettings
from wabridge.observability.correlation import CORRELATION_ID_HEADER, get_correlation_id
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import hash_identifier

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reminder:
    """A due reminder returned by the backend. PII: never log phone or text."""

    phone: str
    text: str


class BackendClient:
    def __init__(self, settings: BackendSettings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._client = client or httpx.AsyncClient(timeout=settings.timeout)

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        return {CORRELATION_ID_HEADER: get_correlation_id()}

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        if not self._settings.enabled:
            raise BackendUnavailable("BACKEND_BASE_URL not configured")

        url = self._settings.url_for(path)
        try:
            response = await self._client.post(
                url, json=payload, headers=self._headers(), timeout=self._settings.timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "backend call failed",
                extra={"extra_fields": {"path": path, "error_type": type(e).__name__, "error": str(e)}},
            )
            raise BackendUnavailable(f"backend call to {path} failed: {type(e).__name__}") from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError:
            return {"reply": response.text.strip()}
        return data if isinstance(data, dict) else {"items": data}

    async def run_action(self, action: str, sender: str, argument: str) -> dict[str, Any]:
        """POST a command action.

        Raises:
            BackendUnavailable: Unknown action, backend disabled, or call failed.
        """
        path = self._settings.paths.get(action)
        if not path:
            raise BackendUnavailable(f"no backend path for action {action}")

        logger.info(
            "backend action",
            extra={"extra_fields": {"action": action, "from_hash": hash_identifier(sender), "arg_len": len(argument)}},
        )
        return await self._post(path, {"action": action, "from": sender, "argument": argument})

    async def fetch_due_reminders(self) -> list[Reminder]:
        """Ask the backend for reminders due now. Malformed entries are skipped."""
        data = await self._post(self._settings.reminders_path, {})
        raw = data.get("reminders") or data.get("items") or []
        reminders: list[Reminder] = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            phone = str(item.get("phone") or item.get("to") or "").strip()
            text = str(item.get("text") or item.get("message") or "").strip()
            if phone and text:
                reminders.append(Reminder(phone=phone, text=text))
        skipped = len(raw) - len(reminders)
        if skipped:
            logger.warning("malformed reminders skipped", extra={"extra_fields": {"count": skipped}})
        return reminders

    async def ping(self) -> bool:
        """Keep-alive ping. Returns False instead of raising."""
        try:
            await self._post(self._settings.ping_path, {"source": "wabridge"})
        except BackendUnavailable:
            return False
        return True
