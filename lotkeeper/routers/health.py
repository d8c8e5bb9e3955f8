"""Liveness and readiness probes."""

import os
from datetime import datetime

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from lotkeeper import database
from lotkeeper.config import settings

router = APIRouter(tags=["health"])

SERVICE_NAME = "LotKeeper"


def _now() -> str:
    return datetime.utcnow().isoformat()


async def _database_status() -> str:
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        return f"error: {str(e)[:100]}"
    return "ok"


@router.get("/health")
async def health_check():
    """Process is up. Never touches the database."""
    return {
        "status": "ok",
        "service": SERVICE_NAME,
        "environment": settings.environment,
        "timestamp": _now(),
    }


@router.get("/health/ready")
async def readiness_check():
    """503 unless the database answers.

    The uploads directory is reported but does not gate readiness; it is
    created on the first photo or GRN write.
    """
    checks = {
        "database": await _database_status(),
        "uploads": "ok" if os.path.isdir(settings.uploads_dir) else "missing",
    }
    ready = checks["database"] == "ok"

    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ready else "unhealthy",
            "service": SERVICE_NAME,
            "checks": checks,
            "timestamp": _now(),
        },
    )
