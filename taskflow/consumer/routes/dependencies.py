"""
FastAPI dependencies resolving the per-app components built at startup.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.consumer.service import ConsumerService
from taskflow.db.connection import Database
from taskflow.db.repository import TaskRepository
from taskflow.observability.metrics import ConsumerMetrics


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_consumer_service(request: Request) -> ConsumerService:
    return request.app.state.consumer_service


def get_consumer_metrics(request: Request) -> ConsumerMetrics:
    return request.app.state.metrics


async def get_async_session(
    database: Annotated[Database, Depends(get_database)],
) -> AsyncGenerator[AsyncSession]:
    """
    Dependency for getting async database sessions.

    Yields:
        AsyncSession: A session committed when the request succeeds.
    """
    async with database.session() as session:
        yield session


async def get_task_repository(
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> TaskRepository:
    return TaskRepository(session)


ConsumerServiceDep = Annotated[ConsumerService, Depends(get_consumer_service)]
TaskRepositoryDep = Annotated[TaskRepository, Depends(get_task_repository)]
SessionDep = Annotated[AsyncSession, Depends(get_async_session)]
MetricsDep = Annotated[ConsumerMetrics, Depends(get_consumer_metrics)]
