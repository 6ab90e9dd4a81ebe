"""create view_statistics snapshot table

Revision ID: 002
Revises: 001
Create Date: 2025-02-08 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "view_statistics",
        sa.Column("id", sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column("entity_type", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("daily_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("weekly_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("monthly_views", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("entity_type", "entity_id", "date", name="uq_view_statistics_entity_date"),
    )
    op.create_index("ix_view_statistics_date", "view_statistics", ["date"])


def downgrade() -> None:
    op.drop_index("ix_view_statistics_date", table_name="view_statistics")
    op.drop_table("view_statistics")
