"""
SmartQuery Backend: Health Check Route
======================================

What:  GET /health for container and load balancer probes.
How:   Runs SELECT 1 against the engine and asks the AI assistant whether
       Gemini is reachable.

Status levels:
    - healthy:   database connected, Gemini available         (HTTP 200)
    - degraded:  database connected, Gemini down or unset     (HTTP 200)
    - unhealthy: database unreachable or engine not started   (HTTP 503)

The query library works without Gemini, so Gemini never makes the service
unhealthy.
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text

from smartquery import __version__, database
from smartquery.schemas.common import HealthResponse
from smartquery.services.gemini_service import CircuitBreaker, gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def check_database() -> str:
    if database.engine is None:
        return "disconnected"
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return "disconnected"
    return "connected"


async def check_gemini() -> str:
    if gemini_service.circuit_breaker.state == CircuitBreaker.OPEN:
        return "circuit_open"
    if not await gemini_service.health_check():
        return "unavailable"
    return "available"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    """
    Probe the database and Gemini, and report an aggregate status.

    SELECT 1 and list_models are both free, so probes can run every few
    seconds without cost.
    """
    db_status = await check_database()
    gemini_status = await check_gemini()

    if db_status != "connected":
        overall = "unhealthy"
        response.status_code = 503
    elif gemini_status != "available":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
