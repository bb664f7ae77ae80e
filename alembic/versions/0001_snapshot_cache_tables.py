"""snapshot cache tables

Revision ID: 0001_snapshots
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_snapshots"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "snapshots",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("contract_address", sa.String(42), nullable=False),
        sa.Column("network", sa.String(10), nullable=False, server_default="testnet"),
        sa.Column("token_standard", sa.String(10), nullable=False, server_default="erc721"),
        sa.Column("snapshot_block", sa.BigInteger(), nullable=False),
        sa.Column("merkle_root", sa.String(66), nullable=True),
        sa.Column("total_nfts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unique_owners", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skipped_logs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("refreshed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_snapshots"),
        sa.UniqueConstraint("contract_address", "network", name="uq_snapshots_contract_address_network"),
    )
    op.create_index("ix_snapshots_contract_address", "snapshots", ["contract_address"])

    op.create_table(
        "snapshot_entries",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("snapshot_id", sa.Uuid(), nullable=False),
        sa.Column("token_id", sa.String(78), nullable=False),
        sa.Column("owner", sa.String(42), nullable=False),
        sa.Column("leaf", sa.String(66), nullable=True),
        sa.Column("proof", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["snapshot_id"], ["snapshots.id"],
            name="fk_snapshot_entries_snapshot_id_snapshots", ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_snapshot_entries"),
    )
    op.create_index("ix_snapshot_entries_snapshot_id", "snapshot_entries", ["snapshot_id"])


def downgrade() -> None:
    op.drop_index("ix_snapshot_entries_snapshot_id", table_name="snapshot_entries")
    op.drop_table("snapshot_entries")
    op.drop_index("ix_snapshots_contract_address", table_name="snapshots")
    op.drop_table("snapshots")
