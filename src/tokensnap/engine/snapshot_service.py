"""SnapshotService: cache lookup, admission, fetch, decode, reduce, commit."""

import json
import logging
import re
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Callable, Optional

from tokensnap.db.repos.snapshot_repo import SnapshotRepo
from tokensnap.domain.enums import Network, TokenStandard
from tokensnap.domain.models.snapshot import OwnershipEntry, Snapshot, SnapshotAnalytics
from tokensnap.engine.admission import AdmissionGate
from tokensnap.engine.decoder import EVENT_TOPICS, LOG_FIELDS, decode_pages
from tokensnap.engine.fetcher import FetchBounds, LogFetcher, LogSource
from tokensnap.engine.merkle import commit_entries
from tokensnap.engine.reducer import build_reducer, order_events
from tokensnap.exceptions import InvalidAddressError

logger = logging.getLogger(__name__)

ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

# (network, bearer token) -> async context manager yielding a LogSource
SourceFactory = Callable[[Network, str], AbstractAsyncContextManager[LogSource]]


def normalize_contract_address(address: Optional[str]) -> str:
    if not address or not ADDRESS_RE.match(address):
        raise InvalidAddressError(address)
    return address.lower()


@dataclass(frozen=True)
class SnapshotOptions:
    refresh: bool = False
    api_key: Optional[str] = None  # caller's own credential, bypasses admission control
    bounds: FetchBounds = field(default_factory=FetchBounds)


class SnapshotService:
    def __init__(
        self,
        source_factory: SourceFactory,
        gate: AdmissionGate,
        shared_token: str = "",
        repo: Optional[SnapshotRepo] = None,
        cache_ttl: timedelta = timedelta(hours=1),
    ) -> None:
        self._source_factory = source_factory
        self._gate = gate
        self._shared_token = shared_token
        self._repo = repo
        self._cache_ttl = cache_ttl

    async def compute_snapshot(
        self,
        contract_address: str,
        network: Network,
        standard: TokenStandard,
        options: SnapshotOptions = SnapshotOptions(),
    ) -> Snapshot:
        address = normalize_contract_address(contract_address)
        use_cache = standard.cacheable and self._repo is not None

        if use_cache and not options.refresh:
            cached = await self.load_cached(address, network)
            if cached is not None:
                logger.info("Cache hit for %s on %s (block %d)", address, network.value, cached.snapshot_block)
                return cached

        token = options.api_key or self._shared_token
        async with self._gate.admit(shared_credential=not options.api_key):
            async with self._source_factory(network, token) as source:
                snapshot = await self.build_snapshot(source, address, network, standard, options.bounds)

        if use_cache:
            if snapshot.is_partial:
                logger.warning("Not caching partial snapshot for %s on %s", address, network.value)
            else:
                await self._repo.save(snapshot)
        return snapshot

    async def build_snapshot(
        self,
        source: LogSource,
        address: str,
        network: Network,
        standard: TokenStandard,
        bounds: FetchBounds = FetchBounds(),
    ) -> Snapshot:
        fetched = await LogFetcher(source).fetch_all(
            address, EVENT_TOPICS[standard], LOG_FIELDS[standard], bounds
        )
        events, stats = decode_pages(fetched.pages, standard)

        reducer = build_reducer(standard).reduce(order_events(events))
        entries = reducer.finalize()

        merkle_root = None
        if standard.supports_merkle:
            merkle_root = commit_entries(entries).hex_root

        logger.info(
            "Snapshot %s %s on %s: %d events -> %d entries, %d skipped, partial=%s",
            standard.value, address, network.value, len(events), len(entries), stats.skipped, fetched.was_limited,
        )
        return Snapshot(
            contract_address=address,
            network=network,
            token_standard=standard,
            snapshot_block=fetched.observed_height,
            entries=entries,
            analytics=reducer.analytics(entries),
            merkle_root=merkle_root,
            is_partial=fetched.was_limited,
            skipped_logs=stats.skipped,
        )

    async def load_cached(self, address: str, network: Network) -> Optional[Snapshot]:
        """Fresh cached snapshot, or None when missing or older than the TTL."""
        record = await self._repo.get(address, network)
        if record is None or record.refreshed_at is None:
            return None

        refreshed_at = record.refreshed_at
        if refreshed_at.tzinfo is None:
            refreshed_at = refreshed_at.replace(tzinfo=UTC)
        if datetime.now(UTC) - refreshed_at > self._cache_ttl:
            logger.info("Cached snapshot for %s on %s is stale", address, network.value)
            return None

        rows = await self._repo.get_entries(record.id)
        entries = [
            OwnershipEntry(
                token_id=int(r.token_id),
                owner=r.owner,
                leaf=r.leaf,
                proof=json.loads(r.proof) if r.proof else [],
            )
            for r in rows
        ]
        return Snapshot(
            contract_address=record.contract_address,
            network=network,
            token_standard=TokenStandard(record.token_standard),
            snapshot_block=record.snapshot_block,
            entries=entries,
            analytics=SnapshotAnalytics(total_nfts=record.total_nfts, unique_owners=record.unique_owners),
            merkle_root=record.merkle_root,
            skipped_logs=record.skipped_logs or 0,
            from_cache=True,
        )
