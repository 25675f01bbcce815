"""
API request and response type definitions.
"""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from taskflow.constants import TaskState


class TaskResponse(BaseModel):
    """Full task details response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    task_type: int = Field(
        ...,
        validation_alias=AliasChoices("task_type", "type"),
        serialization_alias="type",
    )
    value: int
    state: TaskState
    created_at: datetime
    updated_at: datetime


class TaskStatsResponse(BaseModel):
    """Task counts by state and value totals by type."""

    states: dict[str, int]
    backlog: int
    value_totals: dict[int, int] = Field(
        default_factory=dict,
        description="Summed value of done tasks per task type",
    )


class ErrorResponse(BaseModel):
    """Error response body."""

    error: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    timestamp: datetime
