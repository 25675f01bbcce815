"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
import sqlalchemy as sa
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from prometheus_client import CollectorRegistry

from taskflow.config import Settings
from taskflow.consumer.main import create_app
from taskflow.db.connection import Database
from taskflow.observability.metrics import ConsumerMetrics, ProducerMetrics

# Set TEST_DATABASE_URL to a postgresql+asyncpg URL to run against PostgreSQL
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")


async def no_work(value: int) -> None:
    """Simulated work that returns immediately."""
    return None


@pytest.fixture
def database_url(tmp_path) -> str:
    """Get the test database URL."""
    if TEST_DATABASE_URL:
        return TEST_DATABASE_URL
    return f"sqlite+aiosqlite:///{tmp_path / 'taskflow_test.db'}"


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    """Create test settings."""
    return Settings(
        database_url=database_url,
        log_level="INFO",
        log_format="console",
        consumer_message_rate=1000.0,
        consumer_burst_limit=1000,
        producer_max_backlog=5,
        producer_message_rate=100.0,
        producer_idle_interval_seconds=0.01,
        otel_enabled=False,
    )


@pytest_asyncio.fixture
async def database(test_settings: Settings) -> AsyncGenerator[Database]:
    """Create a database with an empty tasks table."""
    db = Database(test_settings)
    await db.create_schema()

    async with db.engine.begin() as conn:
        await conn.execute(sa.text("DELETE FROM tasks"))

    yield db

    await db.close()


@pytest.fixture
def registry() -> CollectorRegistry:
    """A metrics registry private to one test."""
    return CollectorRegistry()


@pytest.fixture
def consumer_metrics(registry: CollectorRegistry) -> ConsumerMetrics:
    return ConsumerMetrics(registry)


@pytest.fixture
def producer_metrics(registry: CollectorRegistry) -> ProducerMetrics:
    return ProducerMetrics(registry)


@pytest.fixture
def app(
    test_settings: Settings,
    database: Database,
    consumer_metrics: ConsumerMetrics,
) -> FastAPI:
    """Create a consumer app bound to the test database."""
    return create_app(
        test_settings,
        database=database,
        metrics=consumer_metrics,
        work=no_work,
    )


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
