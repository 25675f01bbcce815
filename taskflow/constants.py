"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class TaskState(StrEnum):
    """
    Task lifecycle states.

    State transitions (one-directional, no skipping):
    - RECEIVED -> PROCESSING (claimed by the consumer)
    - PROCESSING -> DONE (simulated work finished)
    """

    RECEIVED = "received"
    PROCESSING = "processing"
    DONE = "done"


# The only state a task may hold before entering the keyed state
PREDECESSOR_STATE: dict[TaskState, TaskState] = {
    TaskState.PROCESSING: TaskState.RECEIVED,
    TaskState.DONE: TaskState.PROCESSING,
}

# Value ranges, inclusive lower bound and exclusive upper bound
TASK_TYPE_MIN = 0
TASK_TYPE_MAX = 10
TASK_VALUE_MIN = 0
TASK_VALUE_MAX = 100

# Table name
TASKS_TABLE = "tasks"

# API constants
API_V1_PREFIX = "/v1"
CONSUME_PATH = "/consume"
FORM_FIELD_TYPE = "type"
FORM_FIELD_VALUE = "value"
CONSUME_SUCCESS_BODY = "Task processed"

# Metrics names
METRIC_TASKS_PRODUCED = "tasks_produced_total"
METRIC_TASKS_PROCESSED = "tasks_processed_total"
METRIC_TASKS_DONE = "tasks_done_total"
METRIC_TOTAL_VALUE = "total_value_per_task_type"
METRIC_TASKS_IN_PROCESSING = "tasks_in_processing"
METRIC_TASKS_BACKLOG = "tasks_backlog"

# Trace span names
SPAN_PRODUCE_TASK = "produce_task"
SPAN_CONSUME_TASK = "consume_task"
