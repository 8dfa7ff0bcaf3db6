"""Production guard against API tooling and foreign origins.

Browsers on the learning site send an Origin from the allow-list; the
video player never runs inside Postman.  When enabled (BLOCK_API_TOOLS),
this middleware answers 403 for:
  - a User-Agent containing "postman" (any case);
  - an Origin header that is not in ALLOWED_ORIGINS.
Requests without an Origin header (same-origin, server-to-server) pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.types import ASGIApp

from lessontime.core.metrics import BLOCKED_CLIENTS

logger = logging.getLogger(__name__)

_BLOCKED_AGENT_MARKERS = ("postman",)


class ClientFilterMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        allowed_origins: Iterable[str],
        enabled: bool = True,
    ) -> None:
        super().__init__(app)
        self._allowed_origins = frozenset(allowed_origins)
        self._enabled = enabled

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if self._enabled:
            reason = self._rejection_reason(request)
            if reason is not None:
                BLOCKED_CLIENTS.labels(reason=reason).inc()
                logger.warning(
                    "Blocked client reason=%s origin=%s",
                    reason,
                    request.headers.get("origin"),
                )
                return PlainTextResponse("Access forbidden", status_code=403)
        return await call_next(request)

    def _rejection_reason(self, request: Request) -> str | None:
        user_agent = request.headers.get("user-agent", "").lower()
        if any(marker in user_agent for marker in _BLOCKED_AGENT_MARKERS):
            return "user_agent"

        origin = request.headers.get("origin")
        if origin and origin not in self._allowed_origins:
            return "origin"
        return None
