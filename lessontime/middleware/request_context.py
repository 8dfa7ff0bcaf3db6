"""Request context middleware.

For every request:
  1. take X-Request-ID from the client or generate a UUID, store it in a
     ContextVar so every log line emitted while handling the request
     carries it (see _RequestContextFilter);
  2. time the request once and feed that measurement to both the access
     log line and the Prometheus HTTP metrics;
  3. echo X-Request-ID on the response.

/metrics scrapes are served but not counted.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from lessontime.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Copies the current request ID onto every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


def install_request_context_filter() -> None:
    # Filters on the root logger don't see records propagated from children,
    # so the filter goes on the root handlers.
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)
        try:
            response = await self._timed(request, call_next, req_id)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = req_id
        return response

    async def _timed(
        self, request: Request, call_next: RequestResponseEndpoint, req_id: str
    ) -> Response:
        path = request.url.path
        instrumented = path != "/metrics"

        if instrumented:
            ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            elapsed = time.monotonic() - start
            if instrumented:
                ACTIVE_REQUESTS.dec()
                REQUEST_COUNT.labels(
                    method=request.method,
                    endpoint=path,
                    status_code=str(status_code),
                ).inc()
                REQUEST_DURATION.labels(method=request.method, endpoint=path).observe(
                    elapsed
                )

        duration_ms = round(elapsed * 1000, 1)
        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            path,
            status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": path,
                "status_code": status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
