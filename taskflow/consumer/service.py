"""
Consume operation: admission, validation, claim, simulated work, completion.

One call to ConsumerService.consume handles one inbound request. Requests
rejected before the claim leave the store and metrics untouched, so they are
safe to retry.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any

from taskflow.constants import (
    FORM_FIELD_TYPE,
    FORM_FIELD_VALUE,
    SPAN_CONSUME_TASK,
    TASK_TYPE_MAX,
    TASK_TYPE_MIN,
    TASK_VALUE_MAX,
    TASK_VALUE_MIN,
    TaskState,
)
from taskflow.consumer.rate_limit import RateLimiter
from taskflow.db.connection import Database
from taskflow.db.repository import TaskRepository
from taskflow.exceptions import (
    InvalidTaskError,
    RateLimitExceededError,
    StoreError,
    StoreUnavailableError,
    TaskNotFoundError,
)
from taskflow.observability.metrics import ConsumerMetrics, TaskValueTotals
from taskflow.observability.tracing import get_tracer

logger = logging.getLogger(__name__)

# Receives the task value; stands in for real work
WorkSimulator = Callable[[int], Awaitable[None]]

_INTEGER = re.compile(r"[+-]?[0-9]+")


async def simulate_work(value: int) -> None:
    """Block for ``value`` milliseconds."""
    await asyncio.sleep(value / 1000)


def parse_task_field(name: str, raw: Any, low: int, high: int) -> int:
    """
    Parse a form field as an integer in ``[low, high)``.

    Raises:
        InvalidTaskError: If the field is missing, not an integer or out of range.
    """
    if raw is None or str(raw).strip() == "":
        raise InvalidTaskError(f"Missing task {name}")

    text = str(raw).strip()
    if not _INTEGER.fullmatch(text):
        raise InvalidTaskError(f"Invalid task {name}")
    parsed = int(text)

    if not low <= parsed < high:
        raise InvalidTaskError(f"Task {name} must be in [{low}, {high})")

    return parsed


class ConsumerService:
    """
    Claims and completes tasks on behalf of the consume endpoint.

    The claim and the RECEIVED -> PROCESSING transition are one atomic store
    operation. Once a task is claimed, the remaining steps run to completion
    even if the caller goes away, and metric failures are logged rather than
    turned into request failures.
    """

    def __init__(
        self,
        database: Database,
        limiter: RateLimiter,
        metrics: ConsumerMetrics,
        value_totals: TaskValueTotals | None = None,
        work: WorkSimulator = simulate_work,
    ):
        """
        Initialize the service.

        Args:
            database: Database owning the task store.
            limiter: Admission control limiter.
            metrics: Consumer metrics collector.
            value_totals: Per-type running value sum. Created if omitted.
            work: Simulated work coroutine, called with the task value.
        """
        self._database = database
        self._limiter = limiter
        self._metrics = metrics
        self._value_totals = value_totals or TaskValueTotals()
        self._work = work

    @property
    def value_totals(self) -> TaskValueTotals:
        return self._value_totals

    async def consume(self, raw_type: Any, raw_value: Any) -> int:
        """
        Process one consume request.

        Args:
            raw_type: Unparsed ``type`` form field.
            raw_value: Unparsed ``value`` form field.

        Returns:
            The id of the task that was processed.

        Raises:
            RateLimitExceededError: No admission token was available.
            InvalidTaskError: The type or value is invalid.
            TaskNotFoundError: No received task matches.
            StoreUnavailableError: The store failed during claim or completion.
        """
        allowed, wait_time = self._limiter.check()
        if not allowed:
            logger.debug("Rate limit exceeded", extra={"retry_after": wait_time})
            raise RateLimitExceededError(retry_after=wait_time)

        task_type = parse_task_field(
            FORM_FIELD_TYPE, raw_type, TASK_TYPE_MIN, TASK_TYPE_MAX
        )
        value = parse_task_field(
            FORM_FIELD_VALUE, raw_value, TASK_VALUE_MIN, TASK_VALUE_MAX
        )

        try:
            async with self._database.session() as session:
                task_id = await TaskRepository(session).claim_one(task_type, value)
        except StoreError as e:
            logger.warning(
                "Failed to claim task",
                extra={"task_type": task_type, "value": value, "error": str(e)}
            )
            raise StoreUnavailableError("Task store unavailable") from e

        if task_id is None:
            logger.info(
                "Task not found",
                extra={"task_type": task_type, "value": value}
            )
            raise TaskNotFoundError(task_type, value)

        # A claimed task is completed even if the request is cancelled
        return await asyncio.shield(self._process(task_id, task_type, value))

    async def _process(self, task_id: int, task_type: int, value: int) -> int:
        with get_tracer().start_as_current_span(SPAN_CONSUME_TASK) as span:
            span.set_attribute("task_id", task_id)
            span.set_attribute("task_type", task_type)
            span.set_attribute("value", value)

            logger.info(
                "Processing task",
                extra={"task_id": task_id, "task_type": task_type, "value": value}
            )

            self._record(self._metrics.record_processing_started, task_type)
            try:
                await self._work(value)

                async with self._database.session() as session:
                    affected = await TaskRepository(session).transition(
                        task_id, TaskState.DONE
                    )
            except StoreError as e:
                logger.warning(
                    "Task left in processing state",
                    extra={"task_id": task_id, "error": str(e)}
                )
                raise StoreUnavailableError("Task store unavailable") from e
            finally:
                self._record(self._metrics.record_processing_finished, task_type)

        if affected == 0:
            return task_id

        self._record(self._metrics.record_task_done, task_type, value)
        total = self._value_totals.add(task_type, value)

        logger.info(
            "Task processed successfully",
            extra={
                "task_id": task_id,
                "task_type": task_type,
                "type_value_total": total,
            }
        )
        return task_id

    def _record(self, record: Callable[..., None], *args: Any) -> None:
        try:
            record(*args)
        except Exception:
            logger.exception(
                "Failed to record metrics",
                extra={"metric": getattr(record, "__name__", repr(record))}
            )
