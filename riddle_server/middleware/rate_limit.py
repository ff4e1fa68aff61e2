"""
Riddle Server — Rate Limiting Middleware
=========================================

What:  Per-IP sliding window rate limiter.
How:   Tracks request timestamps per IP in memory.
Who:   Applied to every request via Starlette middleware.
When:  First in the middleware chain.

Algorithm: Sliding Window Counter
    1. Each IP gets a list of request timestamps
    2. On each request, drop timestamps older than the window
    3. If the remaining count >= limit, reject with 429
    4. Otherwise record the current timestamp and continue

    The login endpoint is the main target: the window bounds how many
    passwords one address can try per hour.

Limitation:
    State lives in one process. Multiple uvicorn workers each keep their
    own window, so the effective limit is multiplied by the worker count.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from riddle_server.config import settings
from riddle_server.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Configuration (from settings):
        rate_limit_requests: Max requests per window (default: 100)
        rate_limit_window: Window duration in seconds (default: 3600)

    Excluded paths: /health and the API documentation.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )

        now = time.time()
        window_start = now - settings.rate_limit_window

        self._requests[client_ip] = [
            ts for ts in self._requests[client_ip] if ts > window_start
        ]

        if len(self._requests[client_ip]) >= settings.rate_limit_requests:
            oldest = self._requests[client_ip][0]
            retry_after = int(oldest + settings.rate_limit_window - now) + 1

            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(self._requests[client_ip]),
                settings.rate_limit_window,
            )

            # Rendered here: FastAPI's exception handlers and RequestIDMiddleware
            # both sit inside this layer, so only a client-supplied ID is known.
            rid = request.headers.get("X-Request-ID", "")
            error = RateLimitExceededError(retry_after=retry_after)
            headers = {"Retry-After": str(retry_after)}
            if rid:
                headers["X-Request-ID"] = rid
            return JSONResponse(
                status_code=error.status_code,
                content=error.to_payload(request_id=rid),
                headers=headers,
            )

        self._requests[client_ip].append(now)

        # Periodic cleanup of inactive IPs (every ~1000 recorded requests)
        if sum(len(v) for v in self._requests.values()) % 1000 == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        """Remove IPs that have no requests within the current window."""
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or max(timestamps) < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
