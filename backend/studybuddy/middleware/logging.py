"""
StudyBuddy Backend — Access Log Middleware
============================================

One line per request on the `studybuddy.access` logger:

    POST /api/ai/chat 200 CHAT_MODE 2314.8ms [a1b2c3d4]

The mode column is whatever the route stored on `request.state.assist_mode`
("-" for routes that do not resolve a mode). Request bodies are never logged:
they carry student notes, questions and slide images.

Level follows the status class: 5xx ERROR, 4xx WARNING, otherwise INFO.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from studybuddy.middleware.request_id import request_id_var

logger = logging.getLogger("studybuddy.access")

# Probed every few seconds by Docker / load balancers
QUIET_PATHS = frozenset({"/health"})


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        mode = getattr(request.state, "assist_mode", "-")
        logger.log(
            _level_for(response.status_code),
            "%s %s %d %s %.1fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            mode,
            elapsed_ms,
            request_id_var.get(""),
            extra={"assist_mode": mode, "duration_ms": round(elapsed_ms, 2)},
        )
        return response
