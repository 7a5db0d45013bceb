"""
BookSwap Backend — Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter with two budgets: a general one
       for the whole API and a much smaller one for credential endpoints.
Why:   Login and password-reset endpoints are the brute-force and
       email-bombing targets; browsing publications is not.
How:   Keeps request timestamps per (bucket, IP) in memory; a request is
       rejected with 429 when the bucket already holds `limit` timestamps
       newer than `now - window`.

Buckets:
    auth     POST /users/login, /users/password-reset, /users/verify/resend,
             /users/change-password  → settings.auth_rate_limit_requests
    general  everything else         → settings.rate_limit_requests
    Both share settings.rate_limit_window. /health and the docs are exempt.

Production Upgrade Path:
    State is per process. With several uvicorn workers each enforces its
    own budget; move the counters to Redis to share them.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from bookswap.config import settings
from bookswap.exceptions import RateLimitExceededError
from bookswap.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

AUTH_PATHS = {
    "/users/login",
    "/users/password-reset",
    "/users/verify/resend",
    "/users/change-password",
}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory sliding window limiter; see module docstring."""

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._seen = 0

    def _bucket_for(self, request: Request) -> Tuple[str, int]:
        if request.method == "POST" and request.url.path.rstrip("/") in AUTH_PATHS:
            return "auth", settings.auth_rate_limit_requests
        return "general", settings.rate_limit_requests

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        bucket, limit = self._bucket_for(request)
        key = (bucket, client_ip)

        now = time.time()
        window_start = now - settings.rate_limit_window
        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= limit:
            retry_after = int(timestamps[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s (%s bucket): %d requests in %ds",
                client_ip, bucket, len(timestamps), settings.rate_limit_window,
            )
            # Middleware sits outside the exception handlers, so the error
            # body is built here in the same shape they produce
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=exc.status_code,
                content={
                    "code": exc.code,
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        timestamps.append(now)

        self._seen += 1
        if self._seen % 1000 == 0:
            self._cleanup_inactive(window_start)

        return await call_next(request)

    def _cleanup_inactive(self, window_start: float) -> None:
        """Drop keys with no request inside the current window."""
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate-limit entries", len(inactive))
