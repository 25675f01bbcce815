"""
Consumer module.
Contains admission control, the consume operation and the FastAPI service.
"""

from taskflow.consumer.main import create_app, run

__all__ = ["create_app", "run"]
