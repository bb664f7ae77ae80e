"""Flat, string-valued rows for JSON and CSV output. Big integers are rendered as decimal strings."""

from typing import Any

from tokensnap.domain.enums import TokenStandard
from tokensnap.domain.models.snapshot import BalanceEntry, HoldingEntry, OwnershipEntry, Snapshot, SnapshotEntry

CSV_COLUMNS: dict[TokenStandard, list[str]] = {
    TokenStandard.ERC721: ["tokenId", "owner"],
    TokenStandard.ERC1155: ["address", "tokenId", "balance"],
    TokenStandard.ERC20: ["address", "balance"],
}


def entry_row(entry: SnapshotEntry, with_proof: bool = False) -> dict[str, Any]:
    if isinstance(entry, OwnershipEntry):
        row: dict[str, Any] = {"tokenId": str(entry.token_id), "owner": entry.owner}
    elif isinstance(entry, BalanceEntry):
        row = {"address": entry.address, "balance": str(entry.balance)}
    elif isinstance(entry, HoldingEntry):
        return {"address": entry.address, "tokenId": str(entry.token_id), "balance": str(entry.balance)}
    else:
        raise TypeError(f"Unknown snapshot entry {type(entry).__name__}")

    if with_proof:
        row["leaf"] = entry.leaf
        row["proof"] = entry.proof or []
    return row


def analytics_row(snapshot: Snapshot) -> dict[str, Any]:
    a = snapshot.analytics
    if snapshot.token_standard == TokenStandard.ERC721:
        return {"totalNfts": a.total_nfts, "uniqueOwners": a.unique_owners}
    if snapshot.token_standard == TokenStandard.ERC20:
        return {"totalSupply": str(a.total_supply or 0), "holders": a.holders}
    return {"holders": a.holders, "tokenTypes": a.token_types, "totalSupply": str(a.total_supply or 0)}
