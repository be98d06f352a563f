"""Access logging for the back-office API."""

from __future__ import annotations

import logging
import time
import uuid
from typing import Any
from urllib.parse import parse_qsl, urlencode

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("backoffice.access")

# Header names whose values must be masked in log output.
_SENSITIVE_HEADERS: frozenset[str] = frozenset({"authorization", "apikey", "cookie", "x-api-key"})
# Query parameters that may carry login tokens.
_SENSITIVE_PARAMS: frozenset[str] = frozenset({"token", "access_token"})
_MASK = "***"

_CORRELATION_HEADER = "X-Correlation-ID"


def _safe_headers(request: Request) -> dict[str, str]:
    """Return the request headers with credential values masked."""
    return {key: _MASK if key.lower() in _SENSITIVE_HEADERS else value for key, value in request.headers.items()}


def _safe_query(request: Request) -> str | None:
    query = request.url.query
    if not query:
        return None
    pairs = [
        (key, _MASK if key.lower() in _SENSITIVE_PARAMS else value)
        for key, value in parse_qsl(query, keep_blank_values=True)
    ]
    return urlencode(pairs, safe="*")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one structured record per request.

    The record carries method, path, masked query and headers, status,
    duration, a correlation id (incoming ``X-Correlation-ID`` or a fresh
    UUID-4, echoed on the response) and the trace ids set by
    :class:`~backoffice_api.middleware.trace_context.TraceContextMiddleware`.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        correlation_id = request.headers.get(_CORRELATION_HEADER) or str(uuid.uuid4())

        start = time.monotonic()
        response: Response | None = None
        try:
            response = await call_next(request)
            response.headers[_CORRELATION_HEADER] = correlation_id
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            log_payload: dict[str, Any] = {
                "method": request.method,
                "path": request.url.path,
                "query": _safe_query(request),
                "status_code": status_code,
                "duration_ms": round((time.monotonic() - start) * 1000, 2),
                "client": request.client.host if request.client else None,
                "correlation_id": correlation_id,
                "trace_id": getattr(request.state, "trace_id", ""),
                "span_id": getattr(request.state, "span_id", ""),
                "headers": _safe_headers(request),
            }
            if status_code >= 500:
                logger.error("request completed", extra={"request": log_payload})
            elif status_code >= 400:
                logger.warning("request completed", extra={"request": log_payload})
            else:
                logger.info("request completed", extra={"request": log_payload})
