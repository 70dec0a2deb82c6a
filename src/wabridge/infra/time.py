"""Time utilities for consistent timestamp handling."""

import time
from datetime import datetime, timezone

# Captured at import, which happens once at process start
_PROCESS_STARTED = time.monotonic()


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def from_unix(ts: int | float | None) -> datetime:
    """Convert a provider unix timestamp (seconds) to aware UTC, now if missing."""
    if not ts:
        return utc_now()
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


def process_uptime() -> float:
    """Seconds since the process imported this module."""
    return time.monotonic() - _PROCESS_STARTED
