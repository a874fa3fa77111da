from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from dealflow.config import settings
from dealflow.core.database import check_database_health, get_database

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("")
async def health_check():
    """Liveness probe."""
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
    }


@router.get("/ready")
async def readiness_check(db: AsyncSession | None = Depends(get_database)):
    """Readiness probe; pings the pipeline database when one is configured."""
    db_status = await check_database_health()

    if not db_status:
        logger.warning("health.database.unavailable")
        raise HTTPException(status_code=503, detail="Database is not available")

    return {
        "status": "ready",
        "version": settings.app_version,
        "environment": settings.environment,
        "database": "connected" if settings.database_url else "in-memory",
    }
