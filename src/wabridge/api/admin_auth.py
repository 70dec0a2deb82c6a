"""Admin token guard for session-control endpoints."""

import hmac

from fastapi import Request

from .dependencies import get_services

ADMIN_TOKEN_HEADER = "x-admin-token"


class AdminAuthError(Exception):
    """Missing or wrong admin token. Rendered as 401 by the app."""


def extract_admin_token(request: Request) -> str:
    """Token from the X-Admin-Token header, else the ``token`` query param."""
    return request.headers.get(ADMIN_TOKEN_HEADER) or request.query_params.get("token") or ""


def require_admin(request: Request) -> None:
    """FastAPI dependency. Raises AdminAuthError unless the token matches ADMIN_TOKEN."""
    expected = get_services(request).settings.admin_token
    provided = extract_admin_token(request)
    if not expected or not provided or not hmac.compare_digest(provided, expected):
        raise AdminAuthError()
