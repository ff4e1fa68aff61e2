# Middleware package init
"""
Riddle Server — Middleware Package
===================================

What:  Cross-cutting concerns applied to every request, plus the
       access-control dependencies used by individual routes.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route
                                                                           │
                                          auth.py dependencies ◀───────────┘
                                          (authenticate → authorize)

    1. Rate Limit FIRST: reject abusive clients before any processing
    2. Request ID: correlation ID for every log line of the request
    3. Logging: method, path, status, duration and the request number
    4. Access control runs per route as FastAPI dependencies, because it
       needs a database session and route-specific role requirements
"""
