"""
Database module.
Contains database connection, models, and repository implementations.
"""

from taskflow.db.connection import Database, build_engine
from taskflow.db.models import Base, Task
from taskflow.db.repository import TaskRepository

__all__ = [
    "Database",
    "build_engine",
    "Base",
    "Task",
    "TaskRepository",
]
