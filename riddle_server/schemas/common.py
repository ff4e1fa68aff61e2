"""
Riddle Server — Shared Response Schemas
========================================

What:  Pydantic models shared by every route: error body, health, welcome.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.
    Who:   Produced by the boundary handlers in main.py and by the rate limiter.

    Fields:
        error: Machine-readable error code (ErrorKind value)
        message: Human-readable description for display to users
        details: Optional extra context (e.g. which field failed validation)
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "conflict",
            "message": "Username already exists",
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    """
    What:  Liveness payload returned by GET /health.
    """
    status: str = Field(description="OK when the database answers, otherwise DEGRADED")
    timestamp: datetime = Field(description="Server time (UTC)")
    uptime: float = Field(description="Seconds since the process started")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
