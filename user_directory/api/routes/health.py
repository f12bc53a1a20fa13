"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 only when the database is unreachable
    - The postal-code directory is reported but never gates readiness: a lookup outage
      only degrades enrichment, users are still created without an address

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
    - No outbound call to ViaCEP from a probe: probes run every few seconds
"""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

import user_directory.infrastructure.database as database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "user-directory-api"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": request.app.version,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Database connectivity plus whether the address lookup is wired."""
    manager = database.db_manager
    db_ok = await manager.health_check() if manager else False
    lookup = getattr(request.app.state, "address_lookup", None)
    checks = {
        "database": "healthy" if db_ok else "unavailable",
        "address_lookup": "configured" if lookup is not None else "not_configured",
    }
    if not db_ok:
        logger.warning("Readiness check failed: database unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
                "checks": checks,
            },
        )
    return {"status": "ready", "checks": checks}
