"""
Health check and metrics routes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from taskflow import __version__
from taskflow.consumer.routes.dependencies import MetricsDep, SessionDep
from taskflow.types.api import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the consumer and its database connection.",
)
async def health_check(session: SessionDep) -> HealthResponse:
    """
    Perform a health check.

    Returns:
        HealthResponse with service status.
    """
    db_status = "healthy"
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        db_status = "unhealthy"

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        version=__version__,
        database=db_status,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/ready",
    summary="Readiness check",
)
async def readiness_check(session: SessionDep) -> dict:
    """Readiness probe: the database answers queries."""
    try:
        await session.execute(text("SELECT 1"))
        return {"ready": True}
    except SQLAlchemyError:
        return {"ready": False}


@router.get(
    "/live",
    summary="Liveness check",
)
async def liveness_check() -> dict:
    """Liveness probe."""
    return {"alive": True}


async def metrics(collector: MetricsDep) -> Response:
    """
    Expose Prometheus metrics.

    Registered on the app at the configured metrics endpoint.
    """
    return Response(
        content=collector.get_metrics(),
        media_type=collector.get_content_type(),
    )
