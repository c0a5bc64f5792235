"""
Health check endpoints
"""

from typing import Any
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text

from app.core.context import AppContext, get_context
from app.core.database import get_session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/live")
async def liveness() -> Any:
    """
    Kubernetes liveness probe
    """
    return {"status": "alive", "service": "trustdiner-api"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),
    context: AppContext = Depends(get_context)
) -> Any:
    """
    Kubernetes readiness probe - checks database and cache
    """
    checks = {
        "database": False,
        "cache": False,
        "google_places": context.places.is_configured,
    }

    try:
        result = await db.execute(text("SELECT 1"))
        checks["database"] = result.scalar() == 1
    except Exception as e:
        logger.warning(f"Database readiness check failed: {e}")

    checks["cache"] = await context.cache.health_check()

    ready = checks["database"] and checks["cache"]
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not ready",
            "checks": checks,
            "version": context.settings.APP_VERSION,
        },
    )
