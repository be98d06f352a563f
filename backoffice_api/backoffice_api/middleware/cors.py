"""CORS handling for browser calls from the customer portal.

Every response carries the allow-origin and allow-headers pair, and any
``OPTIONS`` request is answered directly with ``200 ok`` without reaching
a router.
"""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

ALLOWED_HEADERS = "authorization, x-client-info, apikey, content-type"
ALLOWED_METHODS = "GET, POST, OPTIONS"


class PortalCORSMiddleware(BaseHTTPMiddleware):
    """Adds CORS headers and short-circuits preflight requests.

    Parameters
    ----------
    allowed_origins:
        Either ``["*"]`` (the header is the literal ``*``) or explicit
        origins, in which case a matching ``Origin`` is echoed back and
        other origins get no allow-origin header.
    """

    def __init__(self, app: ASGIApp, *, allowed_origins: list[str] | None = None) -> None:
        super().__init__(app)
        origins = allowed_origins or ["*"]
        self._wildcard = "*" in origins
        self._origins = frozenset(origin.rstrip("/") for origin in origins if origin != "*")

    def _cors_headers(self, request: Request) -> dict[str, str]:
        headers = {
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
        }
        if self._wildcard:
            headers["Access-Control-Allow-Origin"] = "*"
            return headers

        origin = request.headers.get("origin", "")
        if origin and origin.rstrip("/") in self._origins:
            headers["Access-Control-Allow-Origin"] = origin
            headers["Vary"] = "Origin"
        elif origin:
            logger.debug("CORS origin not allowed: %s", origin)
        return headers

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method == "OPTIONS":
            return PlainTextResponse("ok", status_code=200, headers=self._cors_headers(request))

        response = await call_next(request)
        response.headers.update(self._cors_headers(request))
        return response
