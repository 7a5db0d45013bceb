"""
BookSwap Backend — Health Check Route
======================================

What:  Health check endpoint for Docker and load balancer health checks.
How:   Runs `SELECT 1` against the database and reports whether outgoing
       mail is configured.

Status levels:
    - healthy:   database reachable and mail configured (HTTP 200)
    - degraded:  database reachable, mail disabled (HTTP 200). The API
                 works, but verification and notification emails are skipped.
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from bookswap import __version__, database
from bookswap.config import settings
from bookswap.schemas.common import HealthResponse

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
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", e)

    mail_status = "configured" if settings.mail_configured else "disabled"
    if overall == "healthy" and not settings.mail_configured:
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        mail=mail_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
