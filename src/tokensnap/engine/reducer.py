"""Fold a decoded event stream into finalized, sorted snapshot entries."""

from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from tokensnap.domain.enums import TokenStandard
from tokensnap.domain.models.events import ZERO_ADDRESS, LogEvent
from tokensnap.domain.models.snapshot import (
    BalanceEntry,
    HoldingEntry,
    OwnershipEntry,
    SnapshotAnalytics,
    SnapshotEntry,
)
from tokensnap.engine.ledger import BalanceLedger, OwnershipLedger


class StateReducer(ABC):
    """Strategy interface: apply events one at a time, then finalize once."""

    def reduce(self, events: Iterable[LogEvent]) -> "StateReducer":
        for event in events:
            self.apply(event)
        return self

    @abstractmethod
    def apply(self, event: LogEvent) -> None:
        """Apply one event in source order."""

    @abstractmethod
    def finalize(self) -> list[SnapshotEntry]:
        """Filtered entries in their canonical order."""

    @abstractmethod
    def analytics(self, entries: Sequence[SnapshotEntry]) -> SnapshotAnalytics: ...


class ERC721Reducer(StateReducer):
    def __init__(self) -> None:
        self.ledger = OwnershipLedger()

    def apply(self, event: LogEvent) -> None:
        # Last writer wins, no check that `from` was the recorded owner
        self.ledger.assign(event.token_id, event.to_address)

    def finalize(self) -> list[OwnershipEntry]:
        held = sorted(self.ledger.held(ZERO_ADDRESS))
        return [OwnershipEntry(token_id=token_id, owner=owner) for token_id, owner in held]

    def analytics(self, entries: Sequence[OwnershipEntry]) -> SnapshotAnalytics:
        return SnapshotAnalytics(
            total_nfts=len(entries),
            unique_owners=len({e.owner for e in entries}),
        )


class ERC20Reducer(StateReducer):
    def __init__(self) -> None:
        self.ledger: BalanceLedger[str] = BalanceLedger()

    def apply(self, event: LogEvent) -> None:
        if event.from_address != ZERO_ADDRESS:
            self.ledger.debit(event.from_address, event.amount)
        if event.to_address != ZERO_ADDRESS:
            self.ledger.credit(event.to_address, event.amount)

    def finalize(self) -> list[BalanceEntry]:
        held = sorted(self.ledger.positive(), key=lambda kv: (-kv[1], kv[0]))
        return [BalanceEntry(address=address, balance=balance) for address, balance in held]

    def analytics(self, entries: Sequence[BalanceEntry]) -> SnapshotAnalytics:
        return SnapshotAnalytics(
            total_supply=sum(e.balance for e in entries),
            holders=len(entries),
        )


class ERC1155Reducer(StateReducer):
    def __init__(self) -> None:
        self.ledger: BalanceLedger[tuple[str, int]] = BalanceLedger()

    def apply(self, event: LogEvent) -> None:
        if event.from_address != ZERO_ADDRESS:
            self.ledger.debit((event.from_address, event.token_id), event.amount)
        if event.to_address != ZERO_ADDRESS:
            self.ledger.credit((event.to_address, event.token_id), event.amount)

    def finalize(self) -> list[HoldingEntry]:
        held = sorted(self.ledger.positive(), key=lambda kv: (kv[0][1], -kv[1], kv[0][0]))
        return [
            HoldingEntry(address=address, token_id=token_id, balance=balance)
            for (address, token_id), balance in held
        ]

    def analytics(self, entries: Sequence[HoldingEntry]) -> SnapshotAnalytics:
        return SnapshotAnalytics(
            holders=len({e.address for e in entries}),
            token_types=len({e.token_id for e in entries}),
            total_supply=sum(e.balance for e in entries),
        )


_REDUCERS: dict[TokenStandard, type[StateReducer]] = {
    TokenStandard.ERC721: ERC721Reducer,
    TokenStandard.ERC20: ERC20Reducer,
    TokenStandard.ERC1155: ERC1155Reducer,
}


def build_reducer(standard: TokenStandard) -> StateReducer:
    return _REDUCERS[standard]()


def order_events(events: list[LogEvent]) -> list[LogEvent]:
    """Stable sort by (block, log index) when every event carries both; else keep source order."""
    if events and all(e.position is not None for e in events):
        return sorted(events, key=lambda e: e.position)
    return events
