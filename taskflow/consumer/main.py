"""
Consumer service entry point.

Serves POST /consume behind a token bucket, plus task reads, health probes
and Prometheus metrics.
"""

import argparse
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry

from taskflow import __version__
from taskflow.config import Settings, load_settings
from taskflow.consumer.rate_limit import RateLimiter
from taskflow.consumer.routes import consume_router, health_router, tasks_router
from taskflow.consumer.routes.health import metrics as metrics_endpoint
from taskflow.consumer.service import ConsumerService, WorkSimulator, simulate_work
from taskflow.db.connection import Database
from taskflow.exceptions import ConsumeError, RateLimitExceededError, StoreError
from taskflow.observability.logging import setup_logging
from taskflow.observability.metrics import ConsumerMetrics
from taskflow.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    settings: Settings = app.state.settings
    database: Database = app.state.database

    # Startup
    setup_logging(settings)
    setup_tracing(settings, "consumer")
    if settings.otel_enabled:
        instrument_sqlalchemy(database.engine.sync_engine)
    if settings.database_auto_create:
        await database.create_schema()

    logger.info(
        "Consumer service started",
        extra={"port": settings.consumer_port, "version": __version__}
    )

    yield

    # Shutdown
    await database.close()
    logger.info("Consumer service shutdown")


async def consume_error_handler(request: Request, exc: ConsumeError) -> JSONResponse:
    """Render a rejected consume request."""
    headers = None
    if isinstance(exc, RateLimitExceededError):
        headers = {"Retry-After": str(int(exc.retry_after) + 1)}

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message},
        headers=headers,
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Render a store failure outside the consume path."""
    logger.warning(
        "Task store error",
        extra={"path": request.url.path, "error": str(exc)}
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": "Task store unavailable"},
    )


def create_app(
    settings: Settings,
    database: Database | None = None,
    metrics: ConsumerMetrics | None = None,
    work: WorkSimulator = simulate_work,
) -> FastAPI:
    """
    Create and configure the consumer application.

    Args:
        settings: Process settings.
        database: Database to use. Built from settings if omitted.
        metrics: Metrics collector. A fresh registry is used if omitted.
        work: Simulated work coroutine.

    Returns:
        FastAPI: The configured application instance.
    """
    database = database or Database(settings)
    metrics = metrics or ConsumerMetrics(CollectorRegistry())
    limiter = RateLimiter(
        rate_per_second=settings.consumer_message_rate,
        burst_limit=settings.consumer_burst_limit,
    )

    app = FastAPI(
        title="Taskflow Consumer",
        description="Rate-limited task consumer",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database
    app.state.metrics = metrics
    app.state.consumer_service = ConsumerService(
        database=database,
        limiter=limiter,
        metrics=metrics,
        work=work,
    )

    app.add_exception_handler(ConsumeError, consume_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)

    app.include_router(consume_router)
    app.include_router(tasks_router)
    app.include_router(health_router)
    app.add_api_route(
        settings.metrics_endpoint,
        metrics_endpoint,
        methods=["GET"],
        summary="Prometheus metrics",
        tags=["Health"],
    )

    if settings.otel_enabled:
        instrument_fastapi(app)

    return app


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Taskflow consumer service")
    parser.add_argument("--version", action="store_true", help="Display the version")
    parser.add_argument("--config", help="Path to a YAML config file")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> None:
    """Run the consumer server."""
    args = parse_args(argv)
    if args.version:
        print(f"Consumer Service Version: {__version__}")
        return

    settings = load_settings(args.config, component="consumer")
    app = create_app(settings)

    uvicorn.run(
        app,
        host=settings.consumer_host,
        port=settings.consumer_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
