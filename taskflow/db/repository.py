"""
Task repository for database operations.
Implements the store contract used by the producer and the consumer.
"""

import logging

from sqlalchemy import and_, func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.constants import PREDECESSOR_STATE, TaskState
from taskflow.db.models import Task
from taskflow.exceptions import StoreError

logger = logging.getLogger(__name__)


class TaskRepository:
    """
    Repository for task database operations.

    Implements atomic operations for:
    - Task creation in the RECEIVED state
    - Backlog measurement
    - Claiming one matching task (compare-and-swap on state)
    - Forward-only state transitions

    Every SQLAlchemy failure is re-raised as StoreError.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the repository with a database session.

        Args:
            session: The async database session.
        """
        self._session = session

    async def insert(self, task_type: int, value: int) -> int:
        """
        Create a new task in the RECEIVED state.

        Args:
            task_type: Task type label.
            value: Task value, also the simulated work duration in ms.

        Returns:
            The store-assigned task id.

        Raises:
            StoreError: On constraint violation or connectivity failure.
        """
        stmt = (
            insert(Task)
            .values({
                Task.task_type: task_type,
                Task.value: value,
                Task.state: TaskState.RECEIVED,
            })
            .returning(Task.id)
        )

        try:
            result = await self._session.execute(stmt)
            task_id = result.scalar_one()
            # Surface constraint violations here rather than at commit
            await self._session.flush()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert task: {e}") from e

        logger.debug(
            "Inserted task",
            extra={"task_id": task_id, "task_type": task_type, "value": value}
        )
        return task_id

    async def count_by_state(self, state: TaskState) -> int:
        """
        Count tasks currently in a given state.

        Args:
            state: The state to count.

        Returns:
            Number of tasks in that state at call time.
        """
        stmt = select(func.count()).select_from(Task).where(Task.state == state)

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to count tasks: {e}") from e

        return result.scalar() or 0

    async def claim_one(self, task_type: int, value: int) -> int | None:
        """
        Atomically claim the oldest RECEIVED task matching type and value.

        The lookup and the RECEIVED -> PROCESSING transition are a single
        conditional UPDATE. Under PostgreSQL the candidate row is locked with
        FOR UPDATE SKIP LOCKED, so concurrent claimants never pick the same
        row; the outer state check keeps the update a compare-and-swap.

        Args:
            task_type: Task type to match.
            value: Task value to match.

        Returns:
            The claimed task id, or None when no task matches.
        """
        candidate = (
            select(Task.id)
            .where(
                and_(
                    Task.task_type == task_type,
                    Task.value == value,
                    Task.state == TaskState.RECEIVED,
                )
            )
            .order_by(Task.id)
            .limit(1)
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )

        stmt = (
            update(Task)
            .where(
                and_(
                    Task.id == candidate,
                    Task.state == TaskState.RECEIVED,
                )
            )
            .values({
                Task.state: TaskState.PROCESSING,
                Task.updated_at: func.now(),
            })
            .returning(Task.id)
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self._session.execute(stmt)
            task_id = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to claim task: {e}") from e

        if task_id is not None:
            logger.debug(
                "Claimed task",
                extra={"task_id": task_id, "task_type": task_type, "value": value}
            )

        return task_id

    async def transition(self, task_id: int, new_state: TaskState) -> int:
        """
        Move a task one step forward in its lifecycle.

        The update only applies when the task is currently in the state that
        directly precedes ``new_state``, so repeated or skipping transitions
        affect no rows.

        Args:
            task_id: The task id.
            new_state: PROCESSING or DONE.

        Returns:
            Number of affected rows (0 or 1).

        Raises:
            ValueError: If ``new_state`` has no predecessor (RECEIVED).
            StoreError: On connectivity failure.
        """
        expected = PREDECESSOR_STATE.get(new_state)
        if expected is None:
            raise ValueError(f"Cannot transition a task into {new_state}")

        stmt = (
            update(Task)
            .where(
                and_(
                    Task.id == task_id,
                    Task.state == expected,
                )
            )
            .values({
                Task.state: new_state,
                Task.updated_at: func.now(),
            })
            .execution_options(synchronize_session=False)
        )

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to update task {task_id}: {e}") from e

        count = result.rowcount
        if count == 0:
            logger.warning(
                "Task state not updated",
                extra={"task_id": task_id, "state": new_state.value}
            )

        return count

    async def get_task(self, task_id: int) -> Task | None:
        """
        Get a task by ID.

        Args:
            task_id: The task id.

        Returns:
            The Task or None if not found.
        """
        stmt = select(Task).where(Task.id == task_id)

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read task {task_id}: {e}") from e

        return result.scalar_one_or_none()

    async def get_state_counts(self) -> dict[str, int]:
        """
        Get task counts by state.

        Returns:
            Dictionary of state -> count, with every state present.
        """
        stmt = select(Task.state, func.count()).group_by(Task.state)

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read task stats: {e}") from e

        counts = {state.value: 0 for state in TaskState}
        for state, count in result.all():
            counts[TaskState(state).value] = count
        return counts

    async def get_value_totals(
        self,
        state: TaskState = TaskState.DONE,
    ) -> dict[int, int]:
        """
        Sum task values per type for tasks in a given state.

        Args:
            state: Only tasks in this state are summed.

        Returns:
            Dictionary of task type -> summed value.
        """
        stmt = (
            select(Task.task_type, func.sum(Task.value))
            .where(Task.state == state)
            .group_by(Task.task_type)
            .order_by(Task.task_type)
        )

        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to read value totals: {e}") from e

        return {task_type: int(total or 0) for task_type, total in result.all()}
