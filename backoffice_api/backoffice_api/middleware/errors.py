"""Last-resort error envelope for exceptions no handler claimed.

Registered inside :class:`PortalCORSMiddleware` so the browser can read the
failure: an ``Exception`` handler on the app would run in Starlette's
outermost error middleware and bypass the CORS headers.
"""

from __future__ import annotations

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR = "An unexpected error occurred"


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turn any unhandled exception into a 400 ``{success: false, error}`` body."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception:
            logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=True)
            return JSONResponse(status_code=400, content={"success": False, "error": UNEXPECTED_ERROR})
