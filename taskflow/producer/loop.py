"""
Producer loop.

Creates tasks while the backlog of received tasks is below the configured
bound, at the configured rate, and notifies the consumer of each new task.
"""

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable

from taskflow.config import Settings
from taskflow.constants import (
    SPAN_PRODUCE_TASK,
    TASK_TYPE_MAX,
    TASK_TYPE_MIN,
    TASK_VALUE_MAX,
    TASK_VALUE_MIN,
    TaskState,
)
from taskflow.db.connection import Database
from taskflow.db.repository import TaskRepository
from taskflow.exceptions import StoreError
from taskflow.observability.metrics import ProducerMetrics
from taskflow.observability.tracing import get_tracer
from taskflow.producer.notifier import ConsumerNotifier

logger = logging.getLogger(__name__)


class Producer:
    """
    Backlog-bounded, rate-controlled task producer.

    Each iteration either produces one task and then waits out the rest of
    its 1/rate slot, or finds the backlog full (or the store unavailable)
    and idles for a fixed short interval. The loop never spins.
    """

    def __init__(
        self,
        settings: Settings,
        database: Database,
        metrics: ProducerMetrics,
        notifier: ConsumerNotifier,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the producer.

        Args:
            settings: Process settings (backlog bound, rate, idle interval).
            database: Database owning the task store.
            metrics: Producer metrics collector.
            notifier: Consumer notifier.
            rng: Random source for task type and value.
            clock: Monotonic clock in seconds.
            sleep: Coroutine used to wait between iterations.
        """
        self.max_backlog = settings.producer_max_backlog
        self.interval = 1.0 / settings.producer_message_rate
        self.idle_interval = settings.producer_idle_interval_seconds

        self._database = database
        self._metrics = metrics
        self._notifier = notifier
        self._rng = rng or random.Random()
        self._clock = clock
        self._sleep = sleep
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Run the production loop until stop() is called."""
        logger.info(
            "Producer starting",
            extra={"max_backlog": self.max_backlog, "interval": self.interval}
        )
        self._running = True

        while self._running:
            started = self._clock()
            try:
                produced = await self.run_once()
            except Exception as e:
                logger.exception(f"Error in producer loop: {e}")
                produced = False

            if produced:
                delay = max(0.0, self.interval - (self._clock() - started))
            else:
                delay = self.idle_interval

            await self._sleep(delay)

        logger.info("Producer stopped")

    async def stop(self) -> None:
        """Stop the loop after the current iteration."""
        logger.info("Producer stopping")
        self._running = False

    async def run_once(self) -> bool:
        """
        Run one iteration of the loop.

        Returns:
            True if a task was inserted, False if the iteration was skipped.
        """
        try:
            async with self._database.session() as session:
                backlog = await TaskRepository(session).count_by_state(
                    TaskState.RECEIVED
                )
        except StoreError as e:
            logger.warning("Failed to read backlog", extra={"error": str(e)})
            return False

        self._metrics.update_backlog(backlog)

        if backlog >= self.max_backlog:
            logger.debug(
                "Backlog full, skipping",
                extra={"backlog": backlog, "max_backlog": self.max_backlog}
            )
            return False

        task_type = self._rng.randrange(TASK_TYPE_MIN, TASK_TYPE_MAX)
        value = self._rng.randrange(TASK_VALUE_MIN, TASK_VALUE_MAX)

        with get_tracer().start_as_current_span(SPAN_PRODUCE_TASK) as span:
            span.set_attribute("task_type", task_type)
            span.set_attribute("value", value)

            try:
                async with self._database.session() as session:
                    task_id = await TaskRepository(session).insert(task_type, value)
            except StoreError as e:
                logger.warning(
                    "Error inserting task",
                    extra={"task_type": task_type, "value": value, "error": str(e)}
                )
                return False

            span.set_attribute("task_id", task_id)
            logger.info(
                "Generated task",
                extra={"task_id": task_id, "task_type": task_type, "value": value}
            )
            self._metrics.record_task_produced(task_type)

            # The insert is committed; delivery is best-effort
            await self._notifier.notify(task_type, value)

        return True
