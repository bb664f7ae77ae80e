"""Tests for SnapshotRepo against async SQLite."""

import json
from datetime import UTC, datetime, timedelta

from tokensnap.db.repos.snapshot_repo import INSERT_BATCH_SIZE, SnapshotRepo
from tokensnap.domain.enums import Network, TokenStandard
from tokensnap.domain.models.snapshot import OwnershipEntry, Snapshot, SnapshotAnalytics

CONTRACT = "0xaaaa000000000000000000000000000000000001"
OTHER = "0xbbbb000000000000000000000000000000000002"
B = "0x000000000000000000000000000000000000000b"
C = "0x000000000000000000000000000000000000000c"


def _snapshot(address: str = CONTRACT, network: Network = Network.TESTNET, entries=None, block: int = 100) -> Snapshot:
    entries = entries if entries is not None else [
        OwnershipEntry(token_id=2, owner=C, leaf="0x02", proof=["0x01"]),
        OwnershipEntry(token_id=1, owner=B, leaf="0x01", proof=["0x02"]),
    ]
    return Snapshot(
        contract_address=address,
        network=network,
        token_standard=TokenStandard.ERC721,
        snapshot_block=block,
        entries=entries,
        analytics=SnapshotAnalytics(total_nfts=len(entries), unique_owners=len({e.owner for e in entries})),
        merkle_root="0xroot",
    )


class TestSave:
    async def test_insert_header_and_rows(self, session):
        repo = SnapshotRepo(session)
        record = await repo.save(_snapshot())

        assert record.contract_address == CONTRACT
        assert record.network == "testnet"
        assert record.snapshot_block == 100
        assert record.total_nfts == 2
        assert record.unique_owners == 2
        assert record.skipped_logs == 0
        assert record.refreshed_at is not None

        rows = await repo.get_entries(record.id)
        assert [(r.token_id, r.owner) for r in rows] == [("1", B), ("2", C)]
        assert json.loads(rows[0].proof) == ["0x02"]

    async def test_overwrite_replaces_rows(self, session):
        repo = SnapshotRepo(session)
        first = await repo.save(_snapshot())
        second = await repo.save(_snapshot(entries=[OwnershipEntry(token_id=9, owner=B)], block=200))

        assert second.id == first.id
        assert second.snapshot_block == 200
        rows = await repo.get_entries(second.id)
        assert [(r.token_id, r.owner) for r in rows] == [("9", B)]

    async def test_huge_token_ids_sorted_numerically(self, session):
        repo = SnapshotRepo(session)
        big = 2**255
        record = await repo.save(_snapshot(entries=[
            OwnershipEntry(token_id=big, owner=B),
            OwnershipEntry(token_id=10, owner=C),
            OwnershipEntry(token_id=9, owner=C),
        ]))
        rows = await repo.get_entries(record.id)
        assert [r.token_id for r in rows] == ["9", "10", str(big)]

    async def test_batches_large_entry_sets(self, session):
        repo = SnapshotRepo(session)
        count = INSERT_BATCH_SIZE * 2 + 3
        record = await repo.save(_snapshot(entries=[OwnershipEntry(token_id=i, owner=B) for i in range(count)]))
        assert len(await repo.get_entries(record.id)) == count


class TestLookup:
    async def test_get_is_case_insensitive_and_network_scoped(self, session):
        repo = SnapshotRepo(session)
        await repo.save(_snapshot())

        assert await repo.get(CONTRACT.upper().replace("0X", "0x"), Network.TESTNET) is not None
        assert await repo.get(CONTRACT, Network.MAINNET) is None

    async def test_list_all_newest_first(self, session):
        repo = SnapshotRepo(session)
        older = await repo.save(_snapshot(address=CONTRACT))
        older.refreshed_at = datetime.now(UTC) - timedelta(minutes=30)
        await repo.save(_snapshot(address=OTHER, network=Network.MAINNET))
        await session.flush()

        assert [r.contract_address for r in await repo.list_all()] == [OTHER, CONTRACT]
        assert [r.contract_address for r in await repo.list_all(Network.TESTNET)] == [CONTRACT]

    async def test_delete(self, session):
        repo = SnapshotRepo(session)
        record = await repo.save(_snapshot())
        record_id = record.id

        assert await repo.delete(CONTRACT, Network.TESTNET) is True
        assert await repo.get(CONTRACT, Network.TESTNET) is None
        assert await repo.get_entries(record_id) == []
        assert await repo.delete(CONTRACT, Network.TESTNET) is False
