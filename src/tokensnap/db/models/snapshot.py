"""Snapshot cache: one header per (contract, network) plus its ownership rows."""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from tokensnap.db.session import Base, TimestampMixin, UUIDPrimaryKey


class SnapshotRecord(UUIDPrimaryKey, TimestampMixin, Base):
    """Cached ERC-721 snapshot header."""

    __tablename__ = "snapshots"
    __table_args__ = (
        UniqueConstraint("contract_address", "network", name="uq_snapshots_contract_address_network"),
    )

    contract_address: Mapped[str] = mapped_column(String(42), index=True)  # lowercase
    network: Mapped[str] = mapped_column(String(10), default="testnet")
    token_standard: Mapped[str] = mapped_column(String(10), default="erc721")
    snapshot_block: Mapped[int] = mapped_column(BigInteger)
    merkle_root: Mapped[Optional[str]] = mapped_column(String(66), default=None)
    total_nfts: Mapped[int] = mapped_column(Integer, default=0)
    unique_owners: Mapped[int] = mapped_column(Integer, default=0)
    skipped_logs: Mapped[int] = mapped_column(Integer, default=0)
    refreshed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=None)


class SnapshotEntryRecord(Base):
    """One token id and its owner inside a cached snapshot."""

    __tablename__ = "snapshot_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    snapshot_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("snapshots.id", ondelete="CASCADE"), index=True)
    token_id: Mapped[str] = mapped_column(String(78))  # decimal string, up to 2**256
    owner: Mapped[str] = mapped_column(String(42))
    leaf: Mapped[Optional[str]] = mapped_column(String(66), default=None)
    proof: Mapped[Optional[str]] = mapped_column(Text, default=None)  # JSON array of hex hashes
