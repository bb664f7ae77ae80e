from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from tokensnap.domain.models.snapshot import Snapshot
from tokensnap.export.rows import analytics_row, entry_row

_camel = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class SnapshotResponse(BaseModel):
    model_config = _camel

    contract: str
    token_type: str
    network: str
    snapshot_block: int
    merkle_root: Optional[str] = None
    from_cache: bool = False
    is_partial: bool = False
    skipped_logs: int = 0
    analytics: dict[str, Any]
    data: list[dict[str, Any]]

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "SnapshotResponse":
        return cls(
            contract=snapshot.contract_address,
            token_type=snapshot.token_standard.value,
            network=snapshot.network.value,
            snapshot_block=snapshot.snapshot_block,
            merkle_root=snapshot.merkle_root,
            from_cache=snapshot.from_cache,
            is_partial=snapshot.is_partial,
            skipped_logs=snapshot.skipped_logs,
            analytics=analytics_row(snapshot),
            data=[entry_row(e) for e in snapshot.entries],
        )


class CollectionResponse(BaseModel):
    model_config = _camel

    contract: str
    token_type: str
    network: str
    snapshot_block: int
    merkle_root: Optional[str] = None
    total_nfts: int
    unique_owners: int
    updated_at: Optional[datetime] = None


class CollectionList(BaseModel):
    collections: list[CollectionResponse]
