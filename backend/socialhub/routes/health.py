"""
SocialHub Backend — Health Check Route
========================================

What:  GET /api/health for container probes and load balancers.
How:   Runs SELECT 1 on a session and reports whether the spreadsheet mirror
       is configured.

Status levels:
    - healthy:   database reachable
    - unhealthy: database unreachable (the API cannot serve anything)
The mirror never affects the status; it is best-effort by nature.
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from socialhub import __version__
from socialhub.database import get_db_session
from socialhub.dependencies import get_mirror_sink
from socialhub.schemas.common import HealthResponse
from socialhub.services.mirror import MirrorSink

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])

# Module-level: set once when the app is imported
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    db: AsyncSession = Depends(get_db_session),
    mirror: MirrorSink = Depends(get_mirror_sink),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        mirror="enabled" if mirror.enabled else "disabled",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
