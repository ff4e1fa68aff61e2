"""
Riddle Server — Health Check Route
===================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the database and reports uptime.
Who:   Called by container health checks, load balancers and monitoring.

Status levels:
    OK:        database reachable
    DEGRADED:  database unreachable (still HTTP 200 so the probe itself
               is distinguishable from a dead process)
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy import text

from riddle_server import __version__
from riddle_server.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Process start, for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check() -> HealthResponse:
    """Probe the database and return aggregate status plus uptime."""
    from riddle_server.database import engine

    db_status = "connected"
    overall = "OK"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "DEGRADED"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.time() - _start_time, 2),
        version=__version__,
        database=db_status,
    )
