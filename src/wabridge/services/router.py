"""Keyword command router.

Maps inbound text to one backend action and formats the backend's answer as
a reply. Never raises to the caller and never touches the transport.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from wabridge.domain.commands import parse_command
from wabridge.domain.errors import BackendUnavailable
from wabridge.observability.logging import get_logger
from wabridge.whatsapp.templates import ACTION_LABELS, render

from .backend import BackendClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of routing one message.

    ``UNRECOGNIZED`` (no action, no reply) means the text is not a command;
    it is not an error.
    """

    action: str | None = None
    reply: str | None = None
    ok: bool = True

    @property
    def recognized(self) -> bool:
        return self.action is not None


UNRECOGNIZED = CommandResult()


def format_backend_reply(data: dict[str, Any]) -> str:
    """Turn a backend JSON answer into reply text."""
    for key in ("reply", "message", "text"):
        value = data.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()

    notes = data.get("notes")
    if notes is None:
        notes = data.get("items")
    if isinstance(notes, list):
        if not notes:
            return render("notes_empty")
        lines = []
        for note in notes:
            if isinstance(note, dict):
                note = note.get("text") or note.get("body") or ""
            note = str(note).strip()
            if note:
                lines.append(f"• {note}")
        if lines:
            return render("notes_list", {"items": "\n".join(lines)})
        return render("notes_empty")

    return render("action_done")


class CommandRouter:
    def __init__(self, backend: BackendClient) -> None:
        self._backend = backend

    async def route(self, sender: str, text: str) -> CommandResult:
        parsed = parse_command(text)
        if parsed is None:
            return UNRECOGNIZED

        try:
            data = await self._backend.run_action(parsed.action, sender, parsed.argument)
        except BackendUnavailable as e:
            logger.warning(
                "command degraded to error reply",
                extra={"extra_fields": {"action": parsed.action, "error": str(e)}},
            )
            label = ACTION_LABELS.get(parsed.action, parsed.action)
            return CommandResult(action=parsed.action, reply=render("backend_error", {"action": label}), ok=False)

        return CommandResult(action=parsed.action, reply=format_backend_reply(data))
