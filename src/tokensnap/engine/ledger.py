"""In-memory ledgers. Python ints are arbitrary precision, so 256-bit amounts never overflow."""

from collections import defaultdict
from typing import Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)


class BalanceLedger(Generic[K]):
    """Signed per-key accumulator. Balances may dip below zero mid-replay."""

    def __init__(self) -> None:
        self._balances: dict[K, int] = defaultdict(int)

    def credit(self, key: K, amount: int) -> None:
        self._balances[key] += amount

    def debit(self, key: K, amount: int) -> None:
        self._balances[key] -= amount

    def balance_of(self, key: K) -> int:
        return self._balances.get(key, 0)

    def positive(self) -> Iterator[tuple[K, int]]:
        """Entries with balance > 0; zeroed-out and negative holders are dropped."""
        return ((k, v) for k, v in self._balances.items() if v > 0)


class OwnershipLedger:
    """token id -> last recorded owner."""

    def __init__(self) -> None:
        self._owners: dict[int, str] = {}

    def assign(self, token_id: int, owner: str) -> None:
        self._owners[token_id] = owner

    def held(self, excluded_owner: str) -> Iterator[tuple[int, str]]:
        return ((t, o) for t, o in self._owners.items() if o != excluded_owner)
