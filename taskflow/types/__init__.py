"""
Type definitions for the task queue API.
"""

from taskflow.types.api import (
    ErrorResponse,
    HealthResponse,
    TaskResponse,
    TaskStatsResponse,
)

__all__ = [
    "TaskResponse",
    "TaskStatsResponse",
    "ErrorResponse",
    "HealthResponse",
]
