"""
Observability module.
Contains logging, metrics, and tracing setup.
"""

from taskflow.observability.logging import bind_context, setup_logging
from taskflow.observability.metrics import (
    ConsumerMetrics,
    ProducerMetrics,
    TaskValueTotals,
)
from taskflow.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "bind_context",
    "ConsumerMetrics",
    "ProducerMetrics",
    "TaskValueTotals",
    "setup_tracing",
    "get_tracer",
]
