"""Liveness and readiness probes."""

import structlog
from fastapi import APIRouter, status
from fastapi.responses import ORJSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from collabhub.config import get_settings
from collabhub.db.session import DBSession

router = APIRouter()
logger = structlog.get_logger()
settings = get_settings()


@router.get("/health")
async def liveness() -> dict[str, str]:
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness(db: DBSession) -> ORJSONResponse:
    """Report 503 until the database answers a trivial query."""
    dialect = db.bind.dialect.name if db.bind is not None else "unknown"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("readiness_check_failed", dialect=dialect, error=exc.__class__.__name__)
        return ORJSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": dialect},
        )

    return ORJSONResponse(content={"status": "healthy", "database": dialect})
