"""
Riddle Server — Request Logging Middleware
===========================================

What:  One structured log line per HTTP request.
How:   Measures the time spent in the rest of the chain and logs method,
       path, status, duration, client and a per-process request number.
Who:   Applied to every request via Starlette middleware.
When:  After RequestIDMiddleware (uses the request ID for correlation).

Request counter:
    `itertools.count` gives each request a number for log correlation.
    `next()` on it is a single C-level call, so concurrent coroutines
    never receive the same number. The counter is per process and resets
    on restart; nothing but the log line depends on it.

What we log vs what we DON'T log:
    ✅ Log: method, path, status, duration, IP, request ID, request number
    ❌ Don't log: request bodies (passwords), Authorization / X-Auth-Token
       headers, ?token= query values
"""

import itertools
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from riddle_server.middleware.request_id import request_id_var

logger = logging.getLogger("riddle_server.access")

_request_counter = itertools.count(1)


def next_request_number() -> int:
    return next(_request_counter)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request at a level chosen by its status:
        5xx → ERROR, 4xx → WARNING, otherwise INFO.

    GET /health is counted but not logged (probes run every few seconds).
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        request_number = next_request_number()
        request.state.request_number = request_number

        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        # url.path never includes the query string, so ?token= is not logged
        path = request.url.path
        rid = request_id_var.get("")

        if path == "/health":
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            "Request %d: %s %s %d %.1fms [%s] from %s",
            request_number,
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "request_number": request_number,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
