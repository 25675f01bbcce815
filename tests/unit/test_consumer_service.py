"""
Unit tests for the consume operation.
"""

import asyncio

import pytest
from prometheus_client import CollectorRegistry

from taskflow.constants import TaskState
from taskflow.consumer.rate_limit import RateLimiter
from taskflow.consumer.service import ConsumerService, parse_task_field
from taskflow.db.connection import Database
from taskflow.db.repository import TaskRepository
from taskflow.exceptions import (
    InvalidTaskError,
    RateLimitExceededError,
    StoreError,
    StoreUnavailableError,
    TaskNotFoundError,
)
from taskflow.observability.metrics import ConsumerMetrics


class BrokenMetrics(ConsumerMetrics):
    """Metrics collector whose recording calls all fail."""

    def record_processing_started(self, task_type: int) -> None:
        raise RuntimeError("metrics backend down")

    def record_processing_finished(self, task_type: int) -> None:
        raise RuntimeError("metrics backend down")

    def record_task_done(self, task_type: int, value: int) -> None:
        raise RuntimeError("metrics backend down")


async def insert_task(database: Database, task_type: int, value: int) -> int:
    async with database.session() as session:
        return await TaskRepository(session).insert(task_type, value)


async def get_state(database: Database, task_id: int) -> TaskState:
    async with database.session() as session:
        task = await TaskRepository(session).get_task(task_id)
    return task.state


async def wait_for_state(
    database: Database,
    task_id: int,
    state: TaskState,
    timeout: float = 5.0,
) -> TaskState:
    """Poll a task until it reaches ``state`` or the timeout expires."""
    deadline = asyncio.get_running_loop().time() + timeout
    current = await get_state(database, task_id)
    while current != state and asyncio.get_running_loop().time() < deadline:
        await asyncio.sleep(0.01)
        current = await get_state(database, task_id)
    return current


async def fail_transition(self, task_id, new_state):
    raise StoreError("connection lost")


class TestParseTaskField:
    """Tests for form field validation."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("0", 0), ("9", 9), (" 5 ", 5), (7, 7)],
    )
    def test_valid(self, raw, expected):
        assert parse_task_field("type", raw, 0, 10) == expected

    @pytest.mark.parametrize(
        "raw", [None, "", "abc", "1.5", "10", "-1", "0_5", "\u0665", "0x5"]
    )
    def test_invalid(self, raw):
        with pytest.raises(InvalidTaskError):
            parse_task_field("type", raw, 0, 10)


class TestConsumerService:
    """Tests for ConsumerService.consume."""

    @pytest.fixture
    def work_log(self) -> list[int]:
        return []

    @pytest.fixture
    def service(
        self,
        database: Database,
        consumer_metrics: ConsumerMetrics,
        work_log: list[int],
    ) -> ConsumerService:
        async def record_work(value: int) -> None:
            work_log.append(value)

        return ConsumerService(
            database=database,
            limiter=RateLimiter(rate_per_second=1000.0, burst_limit=1000),
            metrics=consumer_metrics,
            work=record_work,
        )

    async def test_consume_completes_task(
        self,
        service: ConsumerService,
        database: Database,
        registry: CollectorRegistry,
        work_log: list[int],
    ):
        task_id = await insert_task(database, 3, 50)

        processed = await service.consume("3", "50")

        assert processed == task_id
        assert work_log == [50]
        assert await get_state(database, task_id) == TaskState.DONE
        assert registry.get_sample_value("tasks_done_total", {"type": "3"}) == 1
        assert registry.get_sample_value("tasks_processed_total", {"type": "3"}) == 1
        assert registry.get_sample_value("total_value_per_task_type", {"type": "3"}) == 50
        assert registry.get_sample_value("tasks_in_processing", {"type": "3"}) == 0
        assert service.value_totals.snapshot() == {3: 50}

    async def test_task_is_processing_during_work(
        self,
        database: Database,
        consumer_metrics: ConsumerMetrics,
        registry: CollectorRegistry,
    ):
        task_id = await insert_task(database, 2, 5)
        seen = {}

        async def inspect(value: int) -> None:
            seen["state"] = await get_state(database, task_id)
            seen["gauge"] = registry.get_sample_value("tasks_in_processing", {"type": "2"})

        service = ConsumerService(
            database=database,
            limiter=RateLimiter(rate_per_second=10.0, burst_limit=10),
            metrics=consumer_metrics,
            work=inspect,
        )

        await service.consume("2", "5")

        assert seen == {"state": TaskState.PROCESSING, "gauge": 1}

    async def test_not_found_has_no_side_effects(
        self,
        service: ConsumerService,
        registry: CollectorRegistry,
        work_log: list[int],
    ):
        with pytest.raises(TaskNotFoundError):
            await service.consume("3", "50")

        assert work_log == []
        assert registry.get_sample_value("tasks_done_total", {"type": "3"}) is None
        assert registry.get_sample_value("tasks_in_processing", {"type": "3"}) is None

    @pytest.mark.parametrize(
        ("raw_type", "raw_value"),
        [("x", "1"), ("1", "y"), ("10", "1"), ("1", "100"), (None, "1")],
    )
    async def test_invalid_input_leaves_store_untouched(
        self,
        service: ConsumerService,
        database: Database,
        raw_type,
        raw_value,
    ):
        task_id = await insert_task(database, 1, 1)

        with pytest.raises(InvalidTaskError):
            await service.consume(raw_type, raw_value)

        assert await get_state(database, task_id) == TaskState.RECEIVED

    async def test_rate_limited_before_validation(
        self,
        database: Database,
        consumer_metrics: ConsumerMetrics,
    ):
        task_id = await insert_task(database, 1, 1)
        service = ConsumerService(
            database=database,
            limiter=RateLimiter(rate_per_second=0.001, burst_limit=1),
            metrics=consumer_metrics,
        )

        with pytest.raises(TaskNotFoundError):
            await service.consume("1", "2")

        # The bucket is empty, so even invalid input is rejected for rate
        with pytest.raises(RateLimitExceededError) as exc_info:
            await service.consume("bad", "input")
        with pytest.raises(RateLimitExceededError):
            await service.consume("1", "1")

        assert exc_info.value.retry_after > 0
        assert await get_state(database, task_id) == TaskState.RECEIVED

    async def test_metrics_failure_does_not_fail_request(
        self,
        database: Database,
    ):
        task_id = await insert_task(database, 4, 40)
        service = ConsumerService(
            database=database,
            limiter=RateLimiter(rate_per_second=10.0, burst_limit=10),
            metrics=BrokenMetrics(CollectorRegistry()),
            work=lambda value: asyncio.sleep(0),
        )

        assert await service.consume("4", "40") == task_id
        assert await get_state(database, task_id) == TaskState.DONE
        assert service.value_totals.snapshot()[4] == 40

    async def test_concurrent_claims_process_task_once(
        self,
        service: ConsumerService,
        database: Database,
        registry: CollectorRegistry,
        work_log: list[int],
    ):
        """Only one of several concurrent requests gets the single matching task."""
        task_id = await insert_task(database, 6, 60)

        results = await asyncio.gather(
            *(service.consume("6", "60") for _ in range(5)),
            return_exceptions=True,
        )

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]

        assert successes == [task_id]
        assert len(failures) == 4
        assert all(isinstance(f, TaskNotFoundError) for f in failures)
        assert work_log == [60]
        assert registry.get_sample_value("tasks_done_total", {"type": "6"}) == 1

    async def test_duplicates_each_processed_once(
        self,
        service: ConsumerService,
        database: Database,
    ):
        ids = {await insert_task(database, 8, 8) for _ in range(3)}

        results = await asyncio.gather(
            *(service.consume("8", "8") for _ in range(3)),
        )

        assert set(results) == ids
        for task_id in ids:
            assert await get_state(database, task_id) == TaskState.DONE

    async def test_cancelled_request_still_completes_task(
        self,
        database: Database,
        consumer_metrics: ConsumerMetrics,
        registry: CollectorRegistry,
    ):
        task_id = await insert_task(database, 2, 30)
        started = asyncio.Event()
        release = asyncio.Event()

        async def blocking_work(value: int) -> None:
            started.set()
            await release.wait()

        service = ConsumerService(
            database=database,
            limiter=RateLimiter(rate_per_second=10.0, burst_limit=10),
            metrics=consumer_metrics,
            work=blocking_work,
        )

        request = asyncio.create_task(service.consume("2", "30"))
        await started.wait()
        request.cancel()

        with pytest.raises(asyncio.CancelledError):
            await request

        release.set()

        assert await wait_for_state(database, task_id, TaskState.DONE) == TaskState.DONE
        assert registry.get_sample_value("tasks_done_total", {"type": "2"}) == 1
        assert registry.get_sample_value("tasks_in_processing", {"type": "2"}) == 0

    async def test_completion_store_failure_leaves_task_processing(
        self,
        service: ConsumerService,
        database: Database,
        registry: CollectorRegistry,
        monkeypatch,
    ):
        task_id = await insert_task(database, 5, 15)
        monkeypatch.setattr(TaskRepository, "transition", fail_transition)

        with pytest.raises(StoreUnavailableError) as exc_info:
            await service.consume("5", "15")

        assert exc_info.value.status_code == 503
        assert await get_state(database, task_id) == TaskState.PROCESSING
        assert registry.get_sample_value("tasks_in_processing", {"type": "5"}) == 0
        assert registry.get_sample_value("tasks_done_total", {"type": "5"}) is None
        assert service.value_totals.snapshot() == {}
