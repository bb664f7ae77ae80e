"""Core data types flowing from the log fetcher through the decoder to the reducers."""

from typing import Any, Optional

from pydantic import BaseModel

from tokensnap.domain.enums import EventKind

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class LogEvent(BaseModel):
    """One decoded transfer. Batch transfers yield one LogEvent per (id, amount) pair."""

    standard: EventKind
    from_address: str  # lowercase 0x + 40 hex
    to_address: str
    token_id: Optional[int] = None  # None for ERC-20
    amount: int = 1
    block_number: Optional[int] = None
    log_index: Optional[int] = None

    @property
    def position(self) -> Optional[tuple[int, int]]:
        if self.block_number is None or self.log_index is None:
            return None
        return (self.block_number, self.log_index)


class LogPage(BaseModel):
    """One page returned by the upstream log source."""

    logs: list[dict[str, Any]] = []
    next_block: Optional[int] = None
    archive_height: Optional[int] = None
