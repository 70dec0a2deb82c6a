"""In-memory per-client rate limiting for the HTTP surface.

Sliding window per client IP, kept in process memory (single-process
deployment). X-Forwarded-For is only honored when the bot runs behind a
trusted reverse proxy; otherwise any client could pick its own key.
"""

import time

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response


def client_ip(request: Request, trust_proxy: bool = False) -> str:
    """Key used for rate limiting.

    With ``trust_proxy`` the last X-Forwarded-For hop is used: that is the
    address our own proxy appended, the earlier hops are client-supplied.
    """
    if trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For", "")
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            return hops[-1]
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """Allows ``max_requests`` per ``window`` seconds per key.

    Keys with no hits inside the window are dropped, so memory is bounded by
    the clients seen in the last window.
    """

    def __init__(self, max_requests: int, window: float, clock=time.monotonic) -> None:
        self._max_requests = max_requests
        self._window = window
        self._clock = clock
        self._hits: dict[str, list[float]] = {}
        self._next_sweep = clock() + window

    def __len__(self) -> int:
        return len(self._hits)

    def allow(self, key: str) -> bool:
        now = self._clock()
        cutoff = now - self._window
        if now >= self._next_sweep:
            self._sweep(cutoff)
            self._next_sweep = now + self._window

        hits = [t for t in self._hits.get(key, ()) if t > cutoff]
        if len(hits) >= self._max_requests:
            self._hits[key] = hits
            return False
        hits.append(now)
        self._hits[key] = hits
        return True

    def _sweep(self, cutoff: float) -> None:
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter, trust_proxy: bool = False) -> None:
        super().__init__(app)
        self._limiter = limiter
        self._trust_proxy = trust_proxy

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self._limiter.allow(client_ip(request, self._trust_proxy)):
            return JSONResponse(status_code=429, content={"ok": False, "error": "Too many requests"})
        return await call_next(request)
