"""Health check router."""

import logging
from datetime import datetime

from fastapi import APIRouter

from ..core.config import settings
from ..schemas.health import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping() -> HealthResponse:
    """Return current service status, environment and timestamp."""
    response_data = HealthResponse(
        status=HealthStatus.HEALTHY,
        environment=settings.environment,
        timestamp=datetime.utcnow(),
    )

    logger.debug("Health ping", extra={"timestamp": response_data.timestamp.isoformat()})

    return response_data
