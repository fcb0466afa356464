"""
Observability Middleware.

Adds correlation IDs and structured logging context to requests.
"""

import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("autometer.requests")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

CORRELATION_HEADER = "X-Correlation-ID"

# Health checks hit these every few seconds
QUIET_PATHS = {"/health", "/"}


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once; safe to call on every startup."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=LOG_FORMAT)
    root.setLevel(level.upper())


def _level_for(status_code: int, path: str) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    if path in QUIET_PATHS:
        return logging.DEBUG
    return logging.INFO


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Tags each request with a correlation id and logs one line when it finishes."""

    async def dispatch(self, request: Request, call_next) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid.uuid4())
        request.state.correlation_id = correlation_id

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        response.headers[CORRELATION_HEADER] = correlation_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}"

        path = request.url.path
        logger.log(
            _level_for(response.status_code, path),
            "%s %s -> %s in %.2fms [%s]",
            request.method, path, response.status_code, duration_ms, correlation_id,
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "ip": request.client.host if request.client else "unknown",
            },
        )
        return response
