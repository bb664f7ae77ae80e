"""Merkle claim document: root plus every leaf with its proof."""

from typing import Any

from tokensnap.domain.enums import TokenStandard
from tokensnap.domain.models.snapshot import Snapshot
from tokensnap.export.rows import entry_row


class MerkleUnavailableError(ValueError):
    pass


def merkle_document(snapshot: Snapshot) -> dict[str, Any]:
    if not snapshot.token_standard.supports_merkle or snapshot.merkle_root is None:
        raise MerkleUnavailableError(f"Merkle export is not available for {snapshot.token_standard.value}")
    return {
        "contract": snapshot.contract_address,
        "tokenType": snapshot.token_standard.value,
        "network": snapshot.network.value,
        "snapshotBlock": snapshot.snapshot_block,
        "merkleRoot": snapshot.merkle_root,
        "isPartial": snapshot.is_partial,
        "totalLeaves": len(snapshot.entries),
        "leaves": [entry_row(e, with_proof=True) for e in snapshot.entries],
    }


def merkle_filename(snapshot: Snapshot) -> str:
    stem = "merkle" if snapshot.token_standard == TokenStandard.ERC721 else f"{snapshot.token_standard.value}-merkle"
    if snapshot.is_partial:
        stem += "-partial"
    return f"{snapshot.contract_address}-{stem}.json"
