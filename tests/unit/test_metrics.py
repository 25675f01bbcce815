"""
Unit tests for metrics collectors.
"""

from concurrent.futures import ThreadPoolExecutor

from prometheus_client import CollectorRegistry

from taskflow.observability.metrics import (
    ConsumerMetrics,
    ProducerMetrics,
    TaskValueTotals,
)


class TestTaskValueTotals:
    """Tests for the per-type value accumulator."""

    def test_add_returns_running_total(self):
        totals = TaskValueTotals()

        assert totals.add(3, 50) == 50
        assert totals.add(3, 25) == 75
        assert totals.add(4, 1) == 1
        assert totals.snapshot() == {3: 75, 4: 1}

    def test_concurrent_adds(self):
        totals = TaskValueTotals()

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: totals.add(1, 1), range(1000)))

        assert totals.snapshot() == {1: 1000}


class TestConsumerMetrics:
    """Tests for ConsumerMetrics."""

    def test_task_done(self):
        registry = CollectorRegistry()
        metrics = ConsumerMetrics(registry)

        metrics.record_processing_started(3)
        assert registry.get_sample_value("tasks_in_processing", {"type": "3"}) == 1

        metrics.record_processing_finished(3)
        metrics.record_task_done(3, 50)
        metrics.record_task_done(3, 10)

        assert registry.get_sample_value("tasks_in_processing", {"type": "3"}) == 0
        assert registry.get_sample_value("tasks_processed_total", {"type": "3"}) == 2
        assert registry.get_sample_value("tasks_done_total", {"type": "3"}) == 2
        assert registry.get_sample_value("total_value_per_task_type", {"type": "3"}) == 60

    def test_exposition(self):
        metrics = ConsumerMetrics(CollectorRegistry())
        metrics.record_task_done(1, 5)

        body = metrics.get_metrics().decode()

        assert 'tasks_done_total{type="1"} 1.0' in body
        assert 'total_value_per_task_type{type="1"} 5.0' in body
        assert "total_value_per_task_type_total" not in body
        assert metrics.get_content_type().startswith("text/plain")


class TestProducerMetrics:
    """Tests for ProducerMetrics."""

    def test_produced_and_backlog(self):
        registry = CollectorRegistry()
        metrics = ProducerMetrics(registry)

        metrics.record_task_produced(7)
        metrics.record_task_produced(7)
        metrics.update_backlog(12)

        assert registry.get_sample_value("tasks_produced_total", {"type": "7"}) == 2
        assert registry.get_sample_value("tasks_backlog") == 12
