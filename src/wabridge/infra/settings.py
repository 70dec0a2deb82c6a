"""Bot configuration settings.

All configuration comes from environment variables and is loaded once into
frozen dataclasses. Nothing here talks to the network.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

DEFAULT_PHP_API_URL = "https://tu-dominio.com/api/whatsapp-webhook.php"
DEFAULT_ADMIN_TOKEN = "cambia-este-token"


def _env_str(name: str, default: str = "") -> str:
    """Env lookup; empty or whitespace-only values fall back to default."""
    value = os.environ.get(name, "").strip()
    return value or default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class BackendSettings:
    """External backend that stores notes and reminders.

    Attributes:
        base_url: Backend root. Empty disables command actions.
        paths: Action name -> sub-path appended to base_url.
        timeout: Per-call timeout in seconds (kept short).
    """

    base_url: str = ""
    paths: dict[str, str] = field(default_factory=dict)
    reminders_path: str = "/reminders/due"
    ping_path: str = "/ping"
    timeout: float = 5.0

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def url_for(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


@dataclass(frozen=True)
class LLMSettings:
    """Hosted language-model responder (OpenAI-compatible API)."""

    api_key: str = ""
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    system_prompt: str = (
        "Eres MusicMentor, un asistente amable que responde por WhatsApp "
        "en español, con mensajes breves."
    )
    timeout: float = 20.0
    transcribe_audio: bool = False
    transcription_model: str = "whisper-1"

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class BotSettings:
    """Top-level bot settings."""

    port: int = 3000
    environment: str = "production"
    php_api_url: str = DEFAULT_PHP_API_URL
    enable_incoming_webhook: bool = True
    webhook_timeout: float = 5.0
    admin_token: str = DEFAULT_ADMIN_TOKEN
    default_country_code: str = "52"
    jid_suffix: str = "@c.us"
    transport: Literal["bridge", "disabled"] = "bridge"
    bridge_url: str = "ws://localhost:3001"
    bridge_token: str = ""
    reconnect_delay: float = 6.0
    reconnect_max_delay: float = 60.0
    reminder_interval: float = 4 * 60 * 60
    reminder_send_delay: float = 3.0
    rate_limit_window: float = 30.0
    rate_limit_max_requests: int = 60
    trust_proxy: bool = False
    backend: BackendSettings = field(default_factory=BackendSettings)
    llm: LLMSettings = field(default_factory=LLMSettings)


_ACTION_PATH_DEFAULTS: dict[str, tuple[str, str]] = {
    "save_note": ("BACKEND_SAVE_NOTE_PATH", "/notes/save"),
    "recall_notes": ("BACKEND_RECALL_NOTES_PATH", "/notes/search"),
    "list_notes": ("BACKEND_LIST_NOTES_PATH", "/notes/list"),
    "flush_pending": ("BACKEND_FLUSH_PENDING_PATH", "/reminders/flush"),
    "help": ("BACKEND_HELP_PATH", "/help"),
}


def _load_backend() -> BackendSettings:
    return BackendSettings(
        base_url=_env_str("BACKEND_BASE_URL"),
        paths={
            action: _env_str(env_name, default)
            for action, (env_name, default) in _ACTION_PATH_DEFAULTS.items()
        },
        reminders_path=_env_str("BACKEND_REMINDERS_PATH", "/reminders/due"),
        ping_path=_env_str("BACKEND_PING_PATH", "/ping"),
        timeout=_env_float("BACKEND_TIMEOUT_SECONDS", 5.0),
    )


def _load_llm() -> LLMSettings:
    defaults = LLMSettings()
    return LLMSettings(
        api_key=_env_str("LLM_API_KEY"),
        base_url=_env_str("LLM_BASE_URL") or None,
        model=_env_str("LLM_MODEL", defaults.model),
        system_prompt=_env_str("LLM_SYSTEM_PROMPT", defaults.system_prompt),
        timeout=_env_float("LLM_TIMEOUT_SECONDS", defaults.timeout),
        transcribe_audio=_env_bool("TRANSCRIBE_AUDIO", False),
        transcription_model=_env_str("TRANSCRIPTION_MODEL", defaults.transcription_model),
    )


def load_settings() -> BotSettings:
    """Build settings from the current environment.

    Raises:
        RuntimeError: If a numeric variable is malformed or WA_TRANSPORT is unknown.
    """
    transport = _env_str("WA_TRANSPORT", "bridge").lower()
    if transport not in ("bridge", "disabled"):
        raise RuntimeError(f"WA_TRANSPORT must be 'bridge' or 'disabled', got {transport!r}")

    return BotSettings(
        port=_env_int("PORT", 3000),
        environment=_env_str("APP_ENV", "production"),
        php_api_url=_env_str("PHP_API_URL", DEFAULT_PHP_API_URL),
        enable_incoming_webhook=_env_bool("ENABLE_INCOMING_WEBHOOK", True),
        webhook_timeout=_env_float("WEBHOOK_TIMEOUT_SECONDS", 5.0),
        admin_token=_env_str("ADMIN_TOKEN", DEFAULT_ADMIN_TOKEN),
        default_country_code=_env_str("DEFAULT_COUNTRY_CODE", "52"),
        jid_suffix=_env_str("WA_JID_SUFFIX", "@c.us"),
        transport=transport,  # type: ignore[arg-type]
        bridge_url=_env_str("WA_BRIDGE_URL", "ws://localhost:3001"),
        bridge_token=_env_str("WA_BRIDGE_TOKEN"),
        reconnect_delay=_env_float("RECONNECT_DELAY_SECONDS", 6.0),
        reconnect_max_delay=_env_float("RECONNECT_MAX_DELAY_SECONDS", 60.0),
        reminder_interval=_env_float("REMINDER_INTERVAL_SECONDS", 4 * 60 * 60),
        reminder_send_delay=_env_float("REMINDER_SEND_DELAY_SECONDS", 3.0),
        rate_limit_window=_env_float("RATE_LIMIT_WINDOW_SECONDS", 30.0),
        rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 60),
        trust_proxy=_env_bool("TRUST_PROXY", False),
        backend=_load_backend(),
        llm=_load_llm(),
    )
