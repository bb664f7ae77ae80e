import json
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tokensnap.db.models.snapshot import SnapshotEntryRecord, SnapshotRecord
from tokensnap.domain.enums import Network
from tokensnap.domain.models.snapshot import OwnershipEntry, Snapshot

INSERT_BATCH_SIZE = 500


class SnapshotRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, contract_address: str, network: Network) -> Optional[SnapshotRecord]:
        result = await self._session.execute(
            select(SnapshotRecord).where(
                SnapshotRecord.contract_address == contract_address.lower(),
                SnapshotRecord.network == network.value,
            )
        )
        return result.scalar_one_or_none()

    async def get_entries(self, snapshot_id) -> list[SnapshotEntryRecord]:
        """Entries in ascending numeric token id order."""
        result = await self._session.execute(
            select(SnapshotEntryRecord).where(SnapshotEntryRecord.snapshot_id == snapshot_id)
        )
        # token ids exceed any SQL integer type, so order in Python
        return sorted(result.scalars().all(), key=lambda r: int(r.token_id))

    async def list_all(self, network: Optional[Network] = None) -> list[SnapshotRecord]:
        stmt = select(SnapshotRecord)
        if network is not None:
            stmt = stmt.where(SnapshotRecord.network == network.value)
        result = await self._session.execute(
            stmt.order_by(SnapshotRecord.refreshed_at.desc(), SnapshotRecord.contract_address.asc())
        )
        return list(result.scalars().all())

    async def save(self, snapshot: Snapshot) -> SnapshotRecord:
        """Upsert the header, then replace every entry row."""
        record = await self.get(snapshot.contract_address, snapshot.network)
        if record is None:
            record = SnapshotRecord(
                contract_address=snapshot.contract_address.lower(),
                network=snapshot.network.value,
            )
            self._session.add(record)

        record.token_standard = snapshot.token_standard.value
        record.snapshot_block = snapshot.snapshot_block
        record.merkle_root = snapshot.merkle_root
        record.total_nfts = snapshot.analytics.total_nfts or 0
        record.unique_owners = snapshot.analytics.unique_owners or 0
        record.skipped_logs = snapshot.skipped_logs
        record.refreshed_at = datetime.now(UTC)
        await self._session.flush()

        await self._session.execute(
            delete(SnapshotEntryRecord).where(SnapshotEntryRecord.snapshot_id == record.id)
        )

        rows = [self._to_row(record, e) for e in snapshot.entries]
        for start in range(0, len(rows), INSERT_BATCH_SIZE):
            self._session.add_all(rows[start:start + INSERT_BATCH_SIZE])
            await self._session.flush()
        return record

    async def delete(self, contract_address: str, network: Network) -> bool:
        record = await self.get(contract_address, network)
        if record is None:
            return False
        await self._session.execute(
            delete(SnapshotEntryRecord).where(SnapshotEntryRecord.snapshot_id == record.id)
        )
        await self._session.delete(record)
        await self._session.flush()
        return True

    @staticmethod
    def _to_row(record: SnapshotRecord, entry: OwnershipEntry) -> SnapshotEntryRecord:
        return SnapshotEntryRecord(
            snapshot_id=record.id,
            token_id=str(entry.token_id),
            owner=entry.owner,
            leaf=entry.leaf,
            proof=json.dumps(entry.proof) if entry.proof is not None else None,
        )
