"""Health Checks — liveness for the process, readiness for the database.

Invariants:
    - GET /api/health/ returns 200 whenever the process can serve requests
    - GET /api/health/ready returns 503 database_unavailable when db_manager is
      missing or SELECT 1 fails
    - Neither endpoint requires authentication or touches wallet data

Design Decisions:
    - db_manager read through the module at call time: the lifespan creates it
      after this router is imported
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from dynamicvault.infrastructure import database

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def liveness(request: Request):
    return {
        "status": "healthy",
        "service": "dynamicvault-api",
        "version": request.app.version,
    }


@router.get("/ready")
async def readiness():
    """Ready only when the database answers."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "reason": "database_unavailable"},
        )
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "dialect": manager.engine.dialect.name,
        },
    }
