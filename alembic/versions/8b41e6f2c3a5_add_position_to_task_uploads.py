"""add_position_to_task_uploads

Revision ID: 8b41e6f2c3a5
Revises: 3f2a9c1d7b10
Create Date: 2026-10-17 14:20:00.000000
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "8b41e6f2c3a5"
down_revision = "3f2a9c1d7b10"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "task_uploads",
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    # Number existing rows in their previous (timestamp) order
    op.execute(
        """
        UPDATE task_uploads AS tu
        SET position = ranked.rn - 1
        FROM (
            SELECT id,
                   ROW_NUMBER() OVER (
                       PARTITION BY task_progress_id ORDER BY uploaded_at, id
                   ) AS rn
            FROM task_uploads
        ) AS ranked
        WHERE tu.id = ranked.id
        """
    )
    op.create_unique_constraint(
        "uq_task_uploads_progress_position",
        "task_uploads",
        ["task_progress_id", "position"],
    )


def downgrade() -> None:
    op.drop_constraint(
        "uq_task_uploads_progress_position", "task_uploads", type_="unique"
    )
    op.drop_column("task_uploads", "position")
