"""Health & Readiness Probes — liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if database is unreachable (readiness)
"""

import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from parley.api.dependencies import get_database, get_event_hub
from parley.infrastructure.database import DatabaseSessionManager
from parley.services.event_hub import EventHub

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {"status": "healthy", "service": "parley-api", "version": "0.1.0"}


@router.get("/ready")
async def readiness_check(
    hub: EventHub = Depends(get_event_hub),
    db: DatabaseSessionManager | None = Depends(get_database),
):
    """Readiness probe: database connectivity plus live listener count."""
    db_ok = await db.health_check() if db else False
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {
        "status": "ready",
        "checks": {"database": "healthy"},
        "listeners": await hub.listener_count(),
    }
