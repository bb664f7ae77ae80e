"""Take a token snapshot from the command line, without the API or the cache.

Usage:
    PYTHONPATH=src python scripts/take_snapshot.py 0xContract --type erc721 --network mainnet --format csv
"""

import argparse
import asyncio
import json
import logging
import sys

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)-5s %(name)s - %(message)s")
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rebuild token holders from Transfer events")
    parser.add_argument("contract")
    parser.add_argument("--type", dest="token_type", default="erc721", choices=["erc721", "erc1155", "erc20"])
    parser.add_argument("--network", default="testnet", choices=["testnet", "mainnet"])
    parser.add_argument("--format", default="json", choices=["json", "csv", "merkle"])
    parser.add_argument("--max-iterations", type=int, default=None)
    parser.add_argument("--timeout", type=float, default=None)
    parser.add_argument("--api-key", default=None, help="HyperSync token (defaults to HYPERSYNC_BEARER_TOKEN)")
    parser.add_argument("--out", default=None, help="Write to this file instead of stdout")
    return parser.parse_args()


async def main() -> int:
    from tokensnap.api.schemas.snapshot import SnapshotResponse
    from tokensnap.config import settings
    from tokensnap.domain.enums import Network, TokenStandard
    from tokensnap.engine.admission import AdmissionGate
    from tokensnap.engine.fetcher import FetchBounds
    from tokensnap.engine.snapshot_service import SnapshotOptions, SnapshotService
    from tokensnap.exceptions import TokenSnapError
    from tokensnap.export.csv_export import write_csv
    from tokensnap.export.merkle_export import merkle_document
    from tokensnap.infra.hypersync.client import build_source_factory

    args = parse_args()
    standard = TokenStandard(args.token_type)
    if args.format == "merkle" and not standard.supports_merkle:
        print(f"Merkle export is not available for {standard.value}", file=sys.stderr)
        return 2

    service = SnapshotService(
        source_factory=build_source_factory(settings),
        gate=AdmissionGate(limit=settings.admission_limit),
        shared_token=settings.hypersync_bearer_token,
    )
    options = SnapshotOptions(
        api_key=args.api_key,
        bounds=FetchBounds(timeout=args.timeout, max_iterations=args.max_iterations),
    )

    try:
        snapshot = await service.compute_snapshot(args.contract, Network(args.network), standard, options)
    except TokenSnapError as e:
        print(f"Snapshot failed: {e}", file=sys.stderr)
        return 1

    if args.format == "csv":
        output = write_csv(snapshot)
    elif args.format == "merkle":
        output = json.dumps(merkle_document(snapshot), indent=2)
    else:
        output = json.dumps(SnapshotResponse.from_snapshot(snapshot).model_dump(mode="json", by_alias=True), indent=2)

    if args.out:
        with open(args.out, "w") as f:
            f.write(output)
        print(f"Wrote {len(snapshot.entries)} entries to {args.out}", file=sys.stderr)
    else:
        print(output)

    if snapshot.is_partial:
        print("WARNING: snapshot is partial (fetch limit reached)", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
