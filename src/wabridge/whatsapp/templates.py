"""Bot reply texts.

Templates hold static text with named placeholders. Rendering validates the
placeholders so a caller cannot smuggle extra fields into a reply.
"""

from typing import Any

TEMPLATES: dict[str, dict[str, Any]] = {
    "pong": {
        "text": "pong",
        "allowed_params": [],
    },
    "not_understood": {
        "text": "No entendí tu mensaje. Escribe *ayuda* para ver los comandos disponibles.",
        "allowed_params": [],
    },
    "backend_error": {
        "text": "No pude completar *{action}* en este momento. Intenta de nuevo en unos minutos.",
        "allowed_params": ["action"],
    },
    "action_done": {
        "text": "Listo ✅",
        "allowed_params": [],
    },
    "notes_list": {
        "text": "Tus notas:\n{items}",
        "allowed_params": ["items"],
    },
    "notes_empty": {
        "text": "No tienes notas guardadas todavía.",
        "allowed_params": [],
    },
    "audio_not_transcribed": {
        "text": "Recibí tu audio, pero por ahora solo puedo leer mensajes de texto.",
        "allowed_params": [],
    },
    "reminder": {
        "text": "⏰ Recordatorio: {text}",
        "allowed_params": ["text"],
    },
}

# Human-readable action names used in error replies
ACTION_LABELS: dict[str, str] = {
    "save_note": "guardar la nota",
    "recall_notes": "buscar tus notas",
    "list_notes": "listar tus notas",
    "flush_pending": "enviar tus pendientes",
    "help": "mostrar la ayuda",
}


def render(template_key: str, params: dict[str, Any] | None = None) -> str:
    """Render template with params. Validates allowed_params.

    Raises:
        ValueError: If template_key unknown or params contains disallowed keys.
    """
    if template_key not in TEMPLATES:
        raise ValueError(f"Unknown template: {template_key}")

    params = params or {}
    template = TEMPLATES[template_key]
    extras = set(params) - set(template["allowed_params"])
    if extras:
        raise ValueError(f"Disallowed params for {template_key}: {extras}")

    return template["text"].format(**params)
