"""
CellSync Backend — Health Check Route
=======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs SELECT 1 against the store and reports live-channel load.

Status levels:
    - healthy:   Database reachable (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503)

The auth provider is not probed; its outages surface per request as 503.
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from cellsync import __version__
from cellsync.database import engine
from cellsync.schemas.common import HealthResponse
from cellsync.services.change_notifier import change_notifier

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        live_subscribers=change_notifier.subscriber_count(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
