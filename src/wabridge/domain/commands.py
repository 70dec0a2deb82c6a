"""Deterministic command parsing from inbound message text.

Keyword-prefix matching only, no model involved. The table is fixed; the
longest prefix wins so "mis notas" beats "notas".
"""

from dataclasses import dataclass

# action -> literal prefixes (already lowercase)
COMMAND_TABLE: dict[str, tuple[str, ...]] = {
    "save_note": ("guardar", "nota"),
    "recall_notes": ("recordar", "buscar"),
    "list_notes": ("mis notas", "lista", "notas"),
    "flush_pending": ("enviar pendientes", "pendientes"),
    "help": ("ayuda", "help", "menu"),
}

# (prefix, action) ordered longest first
_PREFIXES: list[tuple[str, str]] = sorted(
    ((prefix, action) for action, prefixes in COMMAND_TABLE.items() for prefix in prefixes),
    key=lambda item: len(item[0]),
    reverse=True,
)


@dataclass(frozen=True)
class ParsedCommand:
    action: str
    argument: str
    prefix: str


def clean_text(text: str) -> str:
    """Lowercase, trim and collapse inner whitespace."""
    return " ".join((text or "").lower().split())


def parse_command(text: str) -> ParsedCommand | None:
    """Match text against the command table.

    A prefix matches only on a word boundary: the whole text, or the prefix
    followed by a space.

    Returns:
        ParsedCommand with the remaining text as argument, or None when no
        prefix matches.
    """
    cleaned = clean_text(text)
    if not cleaned:
        return None

    for prefix, action in _PREFIXES:
        if cleaned == prefix:
            return ParsedCommand(action=action, argument="", prefix=prefix)
        if cleaned.startswith(prefix + " "):
            return ParsedCommand(action=action, argument=cleaned[len(prefix) + 1 :], prefix=prefix)

    return None
