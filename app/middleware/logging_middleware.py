"""
HTTP request logging middleware.

One access line per request: method, path, status, duration and the
pairing id or action type when the query carries one. Health probes are
logged at DEBUG so they do not drown out pairing traffic.
"""

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("http")

CORRELATION_PARAMS = ("id", "actionType", "chain", "preferredChain")
PROBE_PATHS = frozenset({"/healthz", "/game/health"})


def _level_for(path: str, status_code: int) -> str:
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warning"
    return "debug" if path in PROBE_PATHS else "info"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Bind a request id for downstream logs and emit the access line."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:8]
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        path = request.url.path
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-request-id"] = request_id
            return response
        finally:
            fields = {key: request.query_params[key] for key in CORRELATION_PARAMS if key in request.query_params}
            getattr(logger, _level_for(path, status_code))(
                "http_request",
                method=request.method,
                path=path,
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
                client=request.client.host if request.client else None,
                **fields,
            )
