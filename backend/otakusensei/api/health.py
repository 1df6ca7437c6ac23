"""Health check endpoints."""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from otakusensei.config import settings
from otakusensei.database import get_db

logger = structlog.get_logger()

router = APIRouter(tags=["Health"])


def _integration_status() -> dict[str, str]:
    """Which outside services this instance has credentials for."""
    return {
        "email": "configured" if settings.smtp_host else "log-only",
        "payments": "configured" if settings.stripe_secret_key else "disabled",
        "google_oauth": "configured" if settings.google_client_id else "disabled",
    }


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> dict:
    """
    Liveness plus dependency status for load balancers and monitoring.

    Only the database decides healthy vs unhealthy; missing integrations are
    reported but do not fail the check.
    """
    status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning("Database health check failed", error=str(e))
        database = f"error: {e}"
        status = "unhealthy"

    return {
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
        "checks": {"database": database, **_integration_status()},
    }


@router.get("/ready")
async def readiness_check() -> dict:
    return {"status": "ready"}
