"""
BookSwap Backend — Request ID Middleware
=========================================

What:  Gives every request a short correlation id and echoes it back in the
       `X-Request-ID` response header.
Why:   Error bodies carry the same id, so a user reporting "no pude publicar
       mi libro" can hand support an id that matches the server log lines.
How:   Reuses an incoming `X-Request-ID` (the frontend may set one) or
       generates 8 hex characters, then stores it in a ContextVar that the
       access logger and the exception handlers read.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_MAX_CLIENT_ID_LENGTH = 64


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns the request id; see module docstring."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        incoming = request.headers.get("X-Request-ID", "").strip()
        rid = incoming[:_MAX_CLIENT_ID_LENGTH] if incoming else uuid.uuid4().hex[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
