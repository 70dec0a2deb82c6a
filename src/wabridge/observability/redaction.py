"""Redaction helpers for safe logging.

Phone numbers, JIDs and message bodies must never reach the logs. Callers log
``hash_identifier`` values and lengths instead; anything else goes through
``safe_log_context``.
"""

import hashlib
import re
from collections.abc import Mapping
from typing import Any

_REDACTED = "[REDACTED]"

# Order matters: whole JIDs first, then bare numbers, then emails
_PII_PATTERNS = (
    re.compile(r"\d{6,}(?:-\d+)?@[\w.]+"),
    re.compile(r"\+?\d[\d\s\-()]{8,}\d"),
    re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"),
)


def hash_identifier(value: str) -> str:
    """Short non-reversible hash of a contact.

    Only the user part of a JID is hashed, so ``...@c.us`` and
    ``...@s.whatsapp.net`` forms of one contact correlate across log lines.
    """
    user = (value or "").split("@", 1)[0]
    return hashlib.sha256(user.encode()).hexdigest()[:12]


def redact_string(value: str) -> str:
    for pattern in _PII_PATTERNS:
        value = pattern.sub(_REDACTED, value)
    return value


def redact_value(value: Any) -> str:
    """String form of ``value`` with PII removed. Containers keep shape only."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return redact_string(value)
    if isinstance(value, (bytes, bytearray)):
        return f"bytes(len={len(value)})"
    if isinstance(value, Mapping):
        return f"dict(keys={sorted(str(k) for k in value)})"
    if isinstance(value, (list, tuple, set, frozenset)):
        return f"list(len={len(value)})"
    return f"<{type(value).__name__}>"


def safe_log_context(**kwargs: Any) -> dict[str, str]:
    return {key: redact_value(value) for key, value in kwargs.items()}
