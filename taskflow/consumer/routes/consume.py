"""
Consume route: the producer's notification target.
"""

from typing import Annotated

from fastapi import APIRouter, Form, status
from fastapi.responses import PlainTextResponse

from taskflow.constants import (
    CONSUME_PATH,
    CONSUME_SUCCESS_BODY,
    FORM_FIELD_TYPE,
    FORM_FIELD_VALUE,
)
from taskflow.consumer.routes.dependencies import ConsumerServiceDep
from taskflow.types.api import ErrorResponse

router = APIRouter(tags=["Consume"])


@router.post(
    CONSUME_PATH,
    response_class=PlainTextResponse,
    summary="Process one task",
    description="Claim a received task matching type and value, process it and mark it done.",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
        status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
    },
)
async def consume(
    service: ConsumerServiceDep,
    task_type: Annotated[str | None, Form(alias=FORM_FIELD_TYPE)] = None,
    value: Annotated[str | None, Form(alias=FORM_FIELD_VALUE)] = None,
) -> PlainTextResponse:
    """
    Process a task.

    Fields are taken as raw strings so that admission control runs before
    any validation; ConsumeError subclasses map to the error statuses.
    """
    await service.consume(task_type, value)
    return PlainTextResponse(CONSUME_SUCCESS_BODY)
