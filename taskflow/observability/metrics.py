"""
Prometheus metrics collection.
"""

import threading

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from taskflow.constants import (
    METRIC_TASKS_BACKLOG,
    METRIC_TASKS_DONE,
    METRIC_TASKS_IN_PROCESSING,
    METRIC_TASKS_PRODUCED,
    METRIC_TASKS_PROCESSED,
    METRIC_TOTAL_VALUE,
)


class TaskValueTotals:
    """
    Running sum of processed task values per type.

    Owned by the consumer service; every update goes through ``add`` under
    a single lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._totals: dict[int, int] = {}

    def add(self, task_type: int, value: int) -> int:
        """Add ``value`` to the type's total and return the new total."""
        with self._lock:
            total = self._totals.get(task_type, 0) + value
            self._totals[task_type] = total
            return total

    def snapshot(self) -> dict[int, int]:
        with self._lock:
            return dict(self._totals)


class _Collector:
    def __init__(self, registry: CollectorRegistry | None = None):
        self._registry = registry or REGISTRY

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


class ProducerMetrics(_Collector):
    """
    Metrics exported by the producer process.

    Collects:
    - Tasks produced per type
    - Last observed backlog
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        super().__init__(registry)

        self.tasks_produced = Counter(
            METRIC_TASKS_PRODUCED,
            "Total number of tasks produced",
            ["type"],
            registry=self._registry,
        )

        self.backlog = Gauge(
            METRIC_TASKS_BACKLOG,
            "Number of tasks in the received state at the last check",
            registry=self._registry,
        )

    def record_task_produced(self, task_type: int) -> None:
        """Record a task insert."""
        self.tasks_produced.labels(type=str(task_type)).inc()

    def update_backlog(self, backlog: int) -> None:
        """Update the observed backlog."""
        self.backlog.set(backlog)


class ConsumerMetrics(_Collector):
    """
    Metrics exported by the consumer process.

    Collects:
    - Tasks processed and done per type
    - Value total per type
    - Tasks currently being processed per type
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        super().__init__(registry)

        self.tasks_processed = Counter(
            METRIC_TASKS_PROCESSED,
            "Total number of tasks processed",
            ["type"],
            registry=self._registry,
        )

        self.tasks_done = Counter(
            METRIC_TASKS_DONE,
            "Total number of tasks done",
            ["type"],
            registry=self._registry,
        )

        # Exposed without a _total suffix; only ever incremented
        self.total_value = Gauge(
            METRIC_TOTAL_VALUE,
            "Total value of tasks processed per type",
            ["type"],
            registry=self._registry,
        )

        self.tasks_in_processing = Gauge(
            METRIC_TASKS_IN_PROCESSING,
            "Current number of tasks being processed",
            ["type"],
            registry=self._registry,
        )

    def record_processing_started(self, task_type: int) -> None:
        """Record a task entering the processing state."""
        self.tasks_in_processing.labels(type=str(task_type)).inc()

    def record_processing_finished(self, task_type: int) -> None:
        """Record a task leaving the processing state, successfully or not."""
        self.tasks_in_processing.labels(type=str(task_type)).dec()

    def record_task_done(self, task_type: int, value: int) -> None:
        """Record a completed task and its value."""
        label = str(task_type)
        self.tasks_processed.labels(type=label).inc()
        self.tasks_done.labels(type=label).inc()
        self.total_value.labels(type=label).inc(value)
