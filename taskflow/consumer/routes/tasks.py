"""
Read-only task routes.
"""

from fastapi import APIRouter, HTTPException, status

from taskflow.constants import API_V1_PREFIX, TaskState
from taskflow.consumer.routes.dependencies import TaskRepositoryDep
from taskflow.types.api import TaskResponse, TaskStatsResponse

router = APIRouter(prefix=f"{API_V1_PREFIX}/tasks", tags=["Tasks"])


@router.get(
    "/stats/summary",
    response_model=TaskStatsResponse,
    summary="Get task statistics",
    description="Task counts by state and summed value of done tasks per type.",
)
async def get_task_stats(repo: TaskRepositoryDep) -> TaskStatsResponse:
    """
    Get task statistics.

    Value totals are derived from the store, so they survive consumer
    restarts, unlike the in-process counters.
    """
    states = await repo.get_state_counts()
    totals = await repo.get_value_totals(TaskState.DONE)

    return TaskStatsResponse(
        states=states,
        backlog=states[TaskState.RECEIVED.value],
        value_totals=totals,
    )


@router.get(
    "/{task_id}",
    response_model=TaskResponse,
    summary="Get task details",
)
async def get_task(task_id: int, repo: TaskRepositoryDep) -> TaskResponse:
    """
    Get task details by ID.

    Raises:
        HTTPException: If the task does not exist.
    """
    task = await repo.get_task(task_id)

    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found",
        )

    return TaskResponse.model_validate(task)
