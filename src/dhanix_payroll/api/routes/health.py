"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from dhanix_payroll.api.dependencies import DbSession
from dhanix_payroll.config import get_settings
from dhanix_payroll.models import PayrollRun

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    database: str
    schema_status: str


async def _check(db: AsyncSession, statement) -> bool:
    try:
        await db.execute(statement)
    except SQLAlchemyError:
        logger.warning("Health check failed: %s", statement, exc_info=True)
        await db.rollback()
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession) -> HealthResponse:
    """Report database reachability and whether the payroll tables exist."""
    database_ok = await _check(db, text("SELECT 1"))
    schema_ok = database_ok and await _check(
        db, select(PayrollRun.payroll_run_id).limit(1)
    )

    return HealthResponse(
        status="healthy" if schema_ok else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=get_settings().engine_version,
        database="healthy" if database_ok else "unhealthy",
        schema_status="ready" if schema_ok else "missing",
    )


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check() -> dict[str, str]:
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
