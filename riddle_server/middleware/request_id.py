"""
Riddle Server — Request ID Middleware
======================================

What:  Assigns a short unique ID to each incoming request and returns it in
       the X-Request-ID response header.
How:   Uses the client-supplied X-Request-ID when present, otherwise a new
       UUID prefix; stores it in a ContextVar and on request.state.
Who:   Read by the logging middleware and the error boundary handlers.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on the same thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header if present
        2. Otherwise generate an 8-character UUID prefix
        3. Store it in the ContextVar and in request.state.request_id
        4. Echo it back in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)

        response.headers["X-Request-ID"] = rid

        return response
