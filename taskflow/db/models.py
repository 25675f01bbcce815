"""
SQLAlchemy database models.
Defines the tasks table shared by the producer and consumer.
"""

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    Index,
    Integer,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from taskflow.constants import (
    TASK_TYPE_MAX,
    TASK_TYPE_MIN,
    TASK_VALUE_MAX,
    TASK_VALUE_MIN,
    TASKS_TABLE,
    TaskState,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class Task(Base):
    """
    A unit of work created by the producer and completed by the consumer.

    This table is the only shared mutable resource between the two
    processes. Range and state checks are enforced by the store itself so
    that a bad insert fails at the boundary rather than in the consumer.
    """

    __tablename__ = TASKS_TABLE

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    task_type: Mapped[int] = mapped_column(
        "type",
        Integer,
        nullable=False,
    )
    value: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    state: Mapped[TaskState] = mapped_column(
        Enum(
            TaskState,
            name="task_state",
            native_enum=False,
            create_constraint=True,
            length=16,
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
        default=TaskState.RECEIVED,
    )

    created_at: Mapped[datetime] = mapped_column(
        "creation_time",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        "last_update_time",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint(
            f"type >= {TASK_TYPE_MIN} AND type < {TASK_TYPE_MAX}",
            name="ck_tasks_type_range",
        ),
        CheckConstraint(
            f"value >= {TASK_VALUE_MIN} AND value < {TASK_VALUE_MAX}",
            name="ck_tasks_value_range",
        ),
        # Backlog counting
        Index("ix_tasks_state", "state"),
        # Claim lookup over unclaimed tasks only
        Index(
            "ix_tasks_claim",
            "type",
            "value",
            "id",
            postgresql_where=text(f"state = '{TaskState.RECEIVED.value}'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"Task(id={self.id}, type={self.task_type}, "
            f"value={self.value}, state={self.state})"
        )
