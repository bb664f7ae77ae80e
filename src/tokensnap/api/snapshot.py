"""Snapshot API: replay a token's transfer history and export holders as JSON, CSV or Merkle proofs."""

import json
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tokensnap.api.deps import get_db, get_settings, get_snapshot_service
from tokensnap.api.schemas.snapshot import SnapshotResponse
from tokensnap.config import Settings
from tokensnap.db.repos.snapshot_repo import SnapshotRepo
from tokensnap.domain.enums import ExportFormat, Network, TokenStandard
from tokensnap.engine.fetcher import FetchBounds
from tokensnap.engine.snapshot_service import SnapshotOptions, SnapshotService, normalize_contract_address
from tokensnap.exceptions import AdmissionRejectedError, ExternalServiceError, InvalidAddressError
from tokensnap.export.csv_export import csv_filename, write_csv
from tokensnap.export.merkle_export import merkle_document, merkle_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/snapshot", tags=["snapshot"])

DbDep = Annotated[AsyncSession, Depends(get_db)]
ServiceDep = Annotated[SnapshotService, Depends(get_snapshot_service)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

PARTIAL_HEADER = "X-Snapshot-Partial"


def _parse_network(value: Optional[str]) -> Network:
    return Network.MAINNET if value == "mainnet" else Network.TESTNET


def _parse_standard(value: Optional[str]) -> TokenStandard:
    try:
        return TokenStandard(value) if value else TokenStandard.ERC721
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported token type: {value}")


def _attachment(filename: str, partial: bool) -> dict[str, str]:
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    if partial:
        headers[PARTIAL_HEADER] = "true"
    return headers


@router.get("")
async def get_snapshot(
    db: DbDep,
    service: ServiceDep,
    settings: SettingsDep,
    contract: Optional[str] = Query(None, description="Token contract address (0x + 40 hex)"),
    network: Optional[str] = Query(None, description="testnet (default) or mainnet"),
    token_type: Optional[str] = Query(None, alias="type", description="erc721 (default), erc1155 or erc20"),
    format: ExportFormat = Query(ExportFormat.JSON),
    refresh: bool = Query(False, description="Ignore the cache and refetch"),
    api_key: Optional[str] = Query(None, description="Own HyperSync token, skips the shared-key queue"),
    max_iterations: Optional[int] = Query(None, ge=1),
    timeout: Optional[float] = Query(None, gt=0, description="Overall fetch budget in seconds"),
):
    try:
        address = normalize_contract_address(contract)
    except InvalidAddressError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    standard = _parse_standard(token_type)
    if format == ExportFormat.MERKLE and not standard.supports_merkle:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Merkle export is not available for {standard.value}",
        )

    options = SnapshotOptions(
        refresh=refresh,
        api_key=api_key or None,
        bounds=FetchBounds(
            timeout=timeout if timeout is not None else settings.fetch_timeout,
            max_iterations=max_iterations if max_iterations is not None else settings.max_iterations,
        ),
    )

    try:
        snapshot = await service.compute_snapshot(address, _parse_network(network), standard, options)
        await db.commit()
    except AdmissionRejectedError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(e), "retry_after": e.retry_after},
            headers={"Retry-After": str(e.retry_after)},
        )
    except ExternalServiceError as e:
        logger.error("Snapshot fetch failed for %s: %s", address, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to fetch snapshot: {e}")

    if format == ExportFormat.CSV:
        return Response(
            content=write_csv(snapshot),
            media_type="text/csv",
            headers=_attachment(csv_filename(snapshot), snapshot.is_partial),
        )

    if format == ExportFormat.MERKLE:
        return Response(
            content=json.dumps(merkle_document(snapshot), indent=2),
            media_type="application/json",
            headers=_attachment(merkle_filename(snapshot), snapshot.is_partial),
        )

    body = SnapshotResponse.from_snapshot(snapshot).model_dump(mode="json", by_alias=True)
    headers = {PARTIAL_HEADER: "true"} if snapshot.is_partial else None
    return Response(content=json.dumps(body), media_type="application/json", headers=headers)


@router.delete("")
async def delete_snapshot(
    db: DbDep,
    contract: Optional[str] = Query(None),
    network: Optional[str] = Query(None),
) -> dict:
    """Drop a cached snapshot so the next request refetches it."""
    try:
        address = normalize_contract_address(contract)
    except InvalidAddressError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    deleted = await SnapshotRepo(db).delete(address, _parse_network(network))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Snapshot not found")
    await db.commit()
    return {"status": "ok"}
