"""
Producer process entry point.
"""

import argparse
import asyncio
import logging
import signal

from prometheus_client import start_http_server

from taskflow import __version__
from taskflow.config import Settings, load_settings
from taskflow.db.connection import Database
from taskflow.observability.logging import bind_context, setup_logging
from taskflow.observability.metrics import ProducerMetrics
from taskflow.observability.tracing import instrument_sqlalchemy, setup_tracing
from taskflow.producer.loop import Producer
from taskflow.producer.notifier import ConsumerNotifier

logger = logging.getLogger(__name__)


async def run_async(settings: Settings) -> None:
    """Run the producer asynchronously."""
    setup_logging(settings)
    setup_tracing(settings, "producer")
    bind_context(component="producer")

    database = Database(settings)
    if settings.otel_enabled:
        instrument_sqlalchemy(database.engine.sync_engine)
    if settings.database_auto_create:
        await database.create_schema()

    metrics = ProducerMetrics()
    start_http_server(settings.producer_metrics_port, registry=metrics.registry)
    logger.info(
        "Producer service started",
        extra={"metrics_port": settings.producer_metrics_port, "version": __version__}
    )

    async with ConsumerNotifier(
        settings.consumer_url,
        timeout=settings.producer_notify_timeout_seconds,
    ) as notifier:
        producer = Producer(settings, database, metrics, notifier)

        # Handle shutdown signals
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda: asyncio.create_task(producer.stop())
            )

        try:
            await producer.start()
        finally:
            await database.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Taskflow producer service")
    parser.add_argument("--version", action="store_true", help="Display the version")
    parser.add_argument("--config", help="Path to a YAML config file")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> None:
    """Run the producer."""
    args = parse_args(argv)
    if args.version:
        print(f"Producer Service Version: {__version__}")
        return

    asyncio.run(run_async(load_settings(args.config, component="producer")))


if __name__ == "__main__":
    run()
