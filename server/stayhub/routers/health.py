"""Health check router."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import __version__
from ..core.database import check_database
from ..core.dependencies import get_db
from ..schemas.health import HealthResponse, HealthStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/health", tags=["health"])


@router.post("/ping", response_model=HealthResponse)
async def health_ping(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Health check endpoint.

    Returns current service status, timestamp, and the state of the database.
    """
    checks = {}
    try:
        await check_database(db)
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.warning("Database health check failed", extra={"error": str(e)})
        checks["database"] = "unavailable"

    response_data = HealthResponse(
        status=HealthStatus.HEALTHY if checks["database"] == "ok" else HealthStatus.DEGRADED,
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        checks=checks
    )

    logger.debug(
        "Health check requested",
        extra={
            "status": response_data.status.value,
            "timestamp": response_data.timestamp.isoformat()
        }
    )

    return JSONResponse(
        status_code=200 if response_data.status is HealthStatus.HEALTHY else 503,
        content=response_data.model_dump(mode="json")
    )
