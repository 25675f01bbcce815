"""Initial schema with tasks table

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer, autoincrement=True, nullable=False),
        sa.Column("type", sa.Integer, nullable=False),
        sa.Column("value", sa.Integer, nullable=False),
        sa.Column("state", sa.String(16), nullable=False),
        sa.Column(
            "creation_time",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "last_update_time",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("type >= 0 AND type < 10", name="ck_tasks_type_range"),
        sa.CheckConstraint("value >= 0 AND value < 100", name="ck_tasks_value_range"),
        sa.CheckConstraint(
            "state IN ('received', 'processing', 'done')",
            name="task_state",
        ),
    )

    # Backlog counting
    op.create_index("ix_tasks_state", "tasks", ["state"])

    # Partial index for claim lookups
    op.execute("""
        CREATE INDEX ix_tasks_claim
        ON tasks (type, value, id)
        WHERE state = 'received'
    """)


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_tasks_claim")
    op.drop_index("ix_tasks_state")
    op.drop_table("tasks")
