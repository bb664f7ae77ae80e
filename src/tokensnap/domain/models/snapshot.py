"""Finalized snapshot types. Integer fields keep full 256-bit precision."""

from typing import Optional, Union

from pydantic import BaseModel

from tokensnap.domain.enums import Network, TokenStandard


class OwnershipEntry(BaseModel):
    """ERC-721: who holds a token id."""

    token_id: int
    owner: str
    leaf: Optional[str] = None
    proof: Optional[list[str]] = None

    @property
    def commitment(self) -> tuple[str, int]:
        return self.owner, self.token_id


class BalanceEntry(BaseModel):
    """ERC-20: raw balance of one holder."""

    address: str
    balance: int
    leaf: Optional[str] = None
    proof: Optional[list[str]] = None

    @property
    def commitment(self) -> tuple[str, int]:
        return self.address, self.balance


class HoldingEntry(BaseModel):
    """ERC-1155: balance of one token id held by one address."""

    address: str
    token_id: int
    balance: int


SnapshotEntry = Union[OwnershipEntry, BalanceEntry, HoldingEntry]


class SnapshotAnalytics(BaseModel):
    total_nfts: Optional[int] = None
    unique_owners: Optional[int] = None
    total_supply: Optional[int] = None
    holders: Optional[int] = None
    token_types: Optional[int] = None


class Snapshot(BaseModel):
    contract_address: str
    network: Network
    token_standard: TokenStandard
    snapshot_block: int  # head height seen when the fetch started
    entries: list[SnapshotEntry] = []
    analytics: SnapshotAnalytics = SnapshotAnalytics()
    merkle_root: Optional[str] = None
    is_partial: bool = False
    skipped_logs: int = 0
    from_cache: bool = False
