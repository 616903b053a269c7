"""Create prompt task table."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("prompt", sa.Text(), nullable=False),
        sa.Column("response", sa.Text(), nullable=False, server_default=""),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_tasks_item_id", "tasks", ["item_id"], unique=False)
    op.create_index("ix_tasks_processed", "tasks", ["processed"], unique=False)
    op.create_index(
        "uq_tasks_item_outstanding",
        "tasks",
        ["item_id"],
        unique=True,
        sqlite_where=sa.text("processed = 0"),
    )


def downgrade() -> None:
    op.drop_index("uq_tasks_item_outstanding", table_name="tasks")
    op.drop_index("ix_tasks_processed", table_name="tasks")
    op.drop_index("ix_tasks_item_id", table_name="tasks")
    op.drop_table("tasks")
