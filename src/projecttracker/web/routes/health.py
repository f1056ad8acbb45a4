"""Health check endpoints for Project Tracker.

This module provides health and readiness endpoints for:
- Kubernetes liveness probes (/health/)
- Kubernetes readiness probes (/health/ready)
- Load balancer health checks

The readiness endpoint verifies connectivity to both the primary store and
the audit log store. An unreachable audit store reports "degraded" rather
than "unhealthy", since business operations keep working without it.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from projecttracker.logging import get_logger
from projecttracker.services.container import ServiceContainer
from projecttracker.web.dependencies import get_container

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Health check response model.

    Attributes:
        status: Current health status ("ok")
    """

    status: str


class ReadinessResponse(BaseModel):
    """Readiness check response model.

    Attributes:
        status: Current readiness status ("ok", "degraded", "unhealthy")
        database: Primary store connectivity ("connected", "disconnected")
        audit: Audit store connectivity ("connected", "disconnected")
    """

    status: str
    database: str
    audit: str


def create_health_router() -> APIRouter:
    """Create health check router with endpoints.

    Routes:
        GET /health/ - Basic liveness check
        GET /health/ready - Readiness check with store verification
    """
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=HealthResponse)
    async def health() -> dict[str, Any]:
        """Basic liveness check."""
        return {"status": "ok"}

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(
        container: ServiceContainer = Depends(get_container),  # noqa: B008
    ) -> dict[str, Any]:
        """Readiness check with connectivity verification of both stores."""
        results = await container.ping()

        if not results["database"]:
            status = "unhealthy"
        elif not results["audit"]:
            status = "degraded"
        else:
            status = "ok"

        log = logger.debug if status == "ok" else logger.warning
        log("readiness_checked", status=status, **results)
        return {
            "status": status,
            "database": "connected" if results["database"] else "disconnected",
            "audit": "connected" if results["audit"] else "disconnected",
        }

    return router
