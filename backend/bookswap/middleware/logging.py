"""
BookSwap Backend — Access Logging Middleware
=============================================

What:  One log line per HTTP request on the `bookswap.access` logger.
Why:   uvicorn's access log has no request id, caller or duration; this
       line has all three and its level follows the response status.
How:   Times the downstream call and logs method, path, status, duration,
       request id, caller id (when authenticated) and client IP.

Log levels:
    5xx → ERROR, 4xx → WARNING, everything else → INFO.
    /health is never logged; load balancers poll it every few seconds.

What we DON'T log:
    request bodies (passwords, profile data) and the Authorization header.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from bookswap.middleware.request_id import request_id_var

logger = logging.getLogger("bookswap.access")

_SILENT_PATHS = {"/health"}


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log line per request; see module docstring."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in _SILENT_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        rid = request_id_var.get("")
        # Set by the auth dependency once the caller is resolved
        user_id = getattr(request.state, "user_id", "-")
        status = response.status_code

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            user_id,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "user_id": user_id,
                "client_ip": client_ip,
            },
        )
        return response
