"""
Health check endpoints for the REST API.
Provides basic and detailed health status of the service and its dependencies.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import func, select, text
from sqlalchemy.orm import Session

from rest_api.models import OutboxEvent, OutboxStatus
from rest_api.services.events import get_outbox_processor
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.infrastructure.events import get_redis_pool
from shared.utils.health import (
    HealthStatus,
    aggregate_health_checks,
    health_check_with_timeout,
)


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
def health_check():
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return {
        "status": "healthy",
        "service": "rest-api",
        "environment": settings.environment,
    }


@health_check_with_timeout(timeout=3.0, component="database")
async def check_database_health(db: Session) -> dict:
    db.execute(text("SELECT 1"))
    return {"type": db.get_bind().dialect.name}


@health_check_with_timeout(timeout=3.0, component="redis")
async def check_redis_health() -> dict:
    redis_client = await get_redis_pool()
    await redis_client.ping()
    return {}


@health_check_with_timeout(timeout=3.0, component="outbox")
async def check_outbox_health(db: Session) -> dict:
    """Backlog per delivery status and whether the processor loop runs."""
    counts = dict(
        db.execute(
            select(OutboxEvent.status, func.count())
            .where(OutboxEvent.status != OutboxStatus.PUBLISHED)
            .group_by(OutboxEvent.status)
        ).all()
    )
    return {
        "pending": counts.get(OutboxStatus.PENDING, 0),
        "processing": counts.get(OutboxStatus.PROCESSING, 0),
        "failed": counts.get(OutboxStatus.FAILED, 0),
        "processor_running": get_outbox_processor().running,
    }


@router.get("/health/detailed")
async def detailed_health_check(db: Session = Depends(get_db)):
    """
    Detailed health check that verifies connectivity to dependencies.

    Returns 503 Service Unavailable if any dependency is down.
    """
    results = await aggregate_health_checks([
        check_database_health(db),
        check_redis_health(),
        check_outbox_health(db),
    ])

    checks = {
        "service": "rest-api",
        "environment": settings.environment,
        "status": results["status"],
        "dependencies": results["components"],
    }

    if results["status"] != HealthStatus.HEALTHY.value:
        return JSONResponse(content=checks, status_code=503)
    return checks
