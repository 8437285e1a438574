"""Security-related helpers (control API auth).

Provides optional bearer-token protection for the control API.
"""

from __future__ import annotations

import secrets

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


def _parse_bearer_header(header_value: str) -> str | None:
    """Return the token from an "Authorization: Bearer <token>" header."""
    if not header_value:
        return None

    scheme, _, token = header_value.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


class BearerTokenMiddleware(BaseHTTPMiddleware):
    """Protect routes with a static bearer token.

    Paths in `allow_paths` (by default only /health) stay public.
    """

    def __init__(self, app, *, token: str, allow_paths: set[str] | None = None):
        super().__init__(app)
        self._token = token
        self._allow_paths = allow_paths or {"/health"}

    def _unauthorized(self) -> Response:
        return Response(
            content="Unauthorized",
            status_code=401,
            headers={"WWW-Authenticate": 'Bearer realm="TaskBridge"'},
        )

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self._allow_paths:
            return await call_next(request)

        presented = _parse_bearer_header(request.headers.get("Authorization", ""))
        if presented is None or not secrets.compare_digest(presented, self._token):
            return self._unauthorized()

        return await call_next(request)
