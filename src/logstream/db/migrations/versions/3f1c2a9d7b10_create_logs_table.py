"""create logs table

The only table: append-only log records, queried newest-first with
optional service/type/time-range filters. The composite index covers the
common "one service, recent window" query.

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 10:12:44.201377
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("service", sa.Text(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_logs_timestamp", "logs", ["timestamp"])
    op.create_index("idx_logs_service_timestamp", "logs", ["service", "timestamp"])
    op.create_index("idx_logs_type", "logs", ["type"])


def downgrade() -> None:
    op.drop_index("idx_logs_type", table_name="logs")
    op.drop_index("idx_logs_service_timestamp", table_name="logs")
    op.drop_index("idx_logs_timestamp", table_name="logs")
    op.drop_table("logs")
