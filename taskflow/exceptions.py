"""
Exception types shared by the store, producer and consumer.
"""

from fastapi import status


class StoreError(Exception):
    """A task store operation failed (constraint violation or connectivity)."""


class ConsumeError(Exception):
    """
    Base class for rejected consume requests.

    Each subclass carries the HTTP status code the consumer answers with.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RateLimitExceededError(ConsumeError):
    """Admission control rejected the request."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: float):
        super().__init__("Rate limit exceeded")
        self.retry_after = retry_after


class InvalidTaskError(ConsumeError):
    """The request's type or value is missing, malformed or out of range."""

    status_code = status.HTTP_400_BAD_REQUEST


class TaskNotFoundError(ConsumeError):
    """No received task matches the requested type and value."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, task_type: int, value: int):
        super().__init__("Task not found")
        self.task_type = task_type
        self.value = value


class StoreUnavailableError(ConsumeError):
    """The task store could not be read or updated."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
