"""
Health check endpoint for monitoring.

Provides health status for load balancers and container health checks.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.database import get_db
from ..schemas.common import HealthResponse


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns the health status of the API and its database.",
)
async def health_check(db: Session = Depends(get_db)) -> HealthResponse:
    db_status = "connected"
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        elapsed_ms = int((time.time() - start) * 1000)
        if elapsed_ms > 100:
            logger.warning(f"Slow database response: {elapsed_ms}ms")
    except SQLAlchemyError as e:
        db_status = "disconnected"
        logger.error(f"Database health check failed: {e}")

    return HealthResponse(
        status="healthy" if db_status == "connected" else "degraded",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc),
        database=db_status,
        environment=settings.environment,
    )
