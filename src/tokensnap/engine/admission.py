"""Process-wide cap on concurrent fetches that spend the shared upstream credential."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from tokensnap.exceptions import AdmissionRejectedError

logger = logging.getLogger(__name__)


class AdmissionGate:
    """Non-queuing permit pool. A caller that cannot get a permit right away is rejected, not parked."""

    def __init__(self, limit: int = 1, retry_after: int = 30) -> None:
        self._semaphore = asyncio.Semaphore(limit)
        self._limit = limit
        self._in_flight = 0
        self.retry_after = retry_after

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @asynccontextmanager
    async def admit(self, shared_credential: bool = True) -> AsyncIterator[None]:
        """Hold a permit for the duration of the block. Own-credential callers pass straight through."""
        if not shared_credential:
            yield
            return

        if self._semaphore.locked():
            logger.info("Rejecting shared-credential fetch: %d/%d in flight", self._in_flight, self._limit)
            raise AdmissionRejectedError(self.retry_after)

        await self._semaphore.acquire()
        self._in_flight += 1
        try:
            yield
        finally:
            self._in_flight -= 1
            self._semaphore.release()
