"""Paginated replay of the upstream event log for one contract."""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

from tokensnap.domain.models.events import LogPage

logger = logging.getLogger(__name__)


class LogSource(Protocol):
    async def get_height(self) -> int: ...

    async def query_logs(
        self, contract_address: str, from_block: int, topics: list[str], fields: list[str]
    ) -> LogPage: ...


@dataclass(frozen=True)
class FetchBounds:
    """Optional overall budget for one replay. None means unbounded."""

    timeout: Optional[float] = None  # seconds of wall clock
    max_iterations: Optional[int] = None


@dataclass
class FetchResult:
    pages: list[LogPage] = field(default_factory=list)
    observed_height: int = 0
    was_limited: bool = False
    iterations: int = 0
    last_cursor: int = 0

    @property
    def log_count(self) -> int:
        return sum(len(p.logs) for p in self.pages)


class LogFetcher:
    """Walks the source from block 0, following `next_block` until exhaustion or a bound trips.

    Any transport failure propagates and aborts the whole replay; there are no page retries.
    """

    def __init__(self, source: LogSource, clock=time.monotonic) -> None:
        self._source = source
        self._clock = clock

    async def fetch_all(
        self,
        contract_address: str,
        topics: list[str],
        fields: list[str],
        bounds: FetchBounds = FetchBounds(),
    ) -> FetchResult:
        result = FetchResult()
        result.observed_height = await self._source.get_height()
        started = self._clock()
        cursor = 0

        while True:
            if bounds.max_iterations is not None and result.iterations >= bounds.max_iterations:
                result.was_limited = True
                logger.warning(
                    "Iteration limit %d reached for %s at block %d (head %d)",
                    bounds.max_iterations, contract_address, cursor, result.observed_height,
                )
                break
            if bounds.timeout is not None and self._clock() - started >= bounds.timeout:
                result.was_limited = True
                logger.warning(
                    "Time limit %.1fs reached for %s at block %d (head %d)",
                    bounds.timeout, contract_address, cursor, result.observed_height,
                )
                break

            page = await self._source.query_logs(contract_address, cursor, topics, fields)
            result.iterations += 1
            result.pages.append(page)
            logger.debug(
                "Page %d for %s: %d logs, from_block=%d next_block=%s",
                result.iterations, contract_address, len(page.logs), cursor, page.next_block,
            )

            if not page.logs and page.next_block is None:
                break
            if page.next_block is None or page.next_block <= cursor:
                break
            cursor = page.next_block

        result.last_cursor = cursor
        logger.info(
            "Fetched %d logs in %d pages for %s (head %d, limited=%s)",
            result.log_count, result.iterations, contract_address, result.observed_height, result.was_limited,
        )
        return result
