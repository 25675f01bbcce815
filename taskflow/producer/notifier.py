"""
Best-effort notification of the consumer after a task is inserted.
"""

import logging

import httpx

from taskflow.constants import FORM_FIELD_TYPE, FORM_FIELD_VALUE

logger = logging.getLogger(__name__)


class ConsumerNotifier:
    """
    Posts ``type`` and ``value`` form fields to the consumer endpoint.

    Delivery failures are logged and reported through the return value;
    they never raise. The task stays in the store either way.
    """

    def __init__(
        self,
        consumer_url: str,
        timeout: float = 2.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the notifier.

        Args:
            consumer_url: Full URL of the consume endpoint.
            timeout: Request timeout in seconds.
            client: Optional pre-built client. Owned by the caller if given.
        """
        self._url = consumer_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def notify(self, task_type: int, value: int) -> bool:
        """
        Tell the consumer a task may be available.

        Args:
            task_type: Type of the inserted task.
            value: Value of the inserted task.

        Returns:
            True if the consumer processed the task, False otherwise.
        """
        try:
            response = await self._client.post(
                self._url,
                data={
                    FORM_FIELD_TYPE: str(task_type),
                    FORM_FIELD_VALUE: str(value),
                },
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Error sending task to consumer",
                extra={"url": self._url, "error": str(e)}
            )
            return False

        if response.is_success:
            return True

        logger.info(
            "Consumer did not process task",
            extra={
                "status_code": response.status_code,
                "task_type": task_type,
                "value": value,
            }
        )
        return False

    async def close(self) -> None:
        """Close the underlying client if this notifier created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ConsumerNotifier":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
