"""Health endpoints."""

import logging
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from citywatch.config import Settings, get_settings
from citywatch.database import get_db
from citywatch.models import GeospatialAnalysis, Incident

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    database: bool
    missing_settings: list[str]
    incident_count: int | None = None
    analyses_processing: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """
    Health check with database connectivity and configuration status.

    ``analyses_processing`` counts analyses that never left ``processing``.
    """
    database_ok = True
    incident_count = None
    analyses_processing = None
    try:
        await db.execute(text("SELECT 1"))
        incident_count = (await db.execute(select(func.count()).select_from(Incident))).scalar()
        analyses_processing = (
            await db.execute(
                select(func.count())
                .select_from(GeospatialAnalysis)
                .where(GeospatialAnalysis.status == "processing")
            )
        ).scalar()
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        database_ok = False

    missing = settings.missing_required()
    status = "healthy" if database_ok and not missing else "degraded"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(UTC),
        database=database_ok,
        missing_settings=missing,
        incident_count=incident_count,
        analyses_processing=analyses_processing,
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """Simple readiness check for container orchestration."""
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness check for container orchestration."""
    return {"status": "alive"}
