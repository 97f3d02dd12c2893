"""
Postify Backend — Health Check Route
======================================

What:  GET /api/health for load balancers and uptime monitors.
How:   Reports process liveness plus a SELECT 1 probe of the database.
       Always answers 200; the `database` field carries the probe result.
"""

import logging

from fastapi import APIRouter, Depends

from app import __version__
from app.database import Database, get_database
from app.schemas.post import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(database: Database = Depends(get_database)) -> HealthResponse:
    db_ok = await database.ping()

    return HealthResponse(
        status="ok",
        message="Server is running",
        version=__version__,
        database="connected" if db_ok else "disconnected",
    )
