"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from pydantic import BaseModel

from canpay.api.dependencies import Store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    storage: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(store: Store) -> HealthResponse:
    """Check API and payroll store health."""
    storage_status = "unhealthy"
    try:
        await store.ping()
        storage_status = "healthy"
    except Exception:
        logger.warning("Payroll store health check failed", exc_info=True)

    return HealthResponse(
        status="healthy" if storage_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        storage=storage_status,
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    """Readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
