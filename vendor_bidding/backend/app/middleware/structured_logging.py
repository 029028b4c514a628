# backend/app/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

log = logging.getLogger("bidding.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    One access-log line per request:
      request_id, user_id, role, method, path, status_code, latency_ms

    user_id/role are read from request.state.principal, which get_principal
    sets once the bearer token has been resolved; anonymous requests log None.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            principal = getattr(request.state, "principal", None)
            log.info(
                "http_request",
                extra={
                    "event": "http_request",
                    "request_id": getattr(request.state, "request_id", None),
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": int((time.perf_counter() - t0) * 1000),
                    "role": getattr(principal, "role", None),
                    "user_id": getattr(principal, "user_id", None),
                },
            )
