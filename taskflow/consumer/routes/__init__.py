"""
Consumer API routes module.
"""

from taskflow.consumer.routes.consume import router as consume_router
from taskflow.consumer.routes.health import router as health_router
from taskflow.consumer.routes.tasks import router as tasks_router

__all__ = ["consume_router", "tasks_router", "health_router"]
