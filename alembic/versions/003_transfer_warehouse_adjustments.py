"""Add warehouse-to-warehouse transfers

Revision ID: 003_warehouse_transfers
Revises: 002_offboarding_tasks
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "003_warehouse_transfers"
down_revision: Union[str, None] = "002_offboarding_tasks"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "transfer_warehouse_adjustments",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("item_id", sa.BigInteger(), nullable=False),
        sa.Column("giving_warehouse_id", sa.BigInteger(), nullable=False),
        sa.Column("receiving_warehouse_id", sa.BigInteger(), nullable=False),
        sa.Column("transfer_stock_qty", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.BigInteger(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.ForeignKeyConstraint(["giving_warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["receiving_warehouse_id"], ["warehouses.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
    )
    op.create_index(
        "ix_transfer_warehouse_adjustments_item_id",
        "transfer_warehouse_adjustments",
        ["item_id"],
    )
    op.create_index(
        "ix_transfer_warehouse_adjustments_giving_warehouse_id",
        "transfer_warehouse_adjustments",
        ["giving_warehouse_id"],
    )
    op.create_index(
        "ix_transfer_warehouse_adjustments_receiving_warehouse_id",
        "transfer_warehouse_adjustments",
        ["receiving_warehouse_id"],
    )


def downgrade() -> None:
    op.drop_table("transfer_warehouse_adjustments")
