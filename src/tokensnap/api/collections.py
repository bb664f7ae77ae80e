from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tokensnap.api.deps import get_db
from tokensnap.api.schemas.snapshot import CollectionList, CollectionResponse
from tokensnap.db.repos.snapshot_repo import SnapshotRepo
from tokensnap.domain.enums import Network

router = APIRouter(prefix="/api/collections", tags=["collections"])

DbDep = Annotated[AsyncSession, Depends(get_db)]


@router.get("", response_model=CollectionList, response_model_by_alias=True)
async def list_collections(
    db: DbDep,
    network: Optional[str] = Query(None, description="testnet or mainnet; anything else lists both"),
) -> CollectionList:
    """Cached ERC-721 snapshots, most recently refreshed first."""
    selected = Network(network) if network in (Network.TESTNET.value, Network.MAINNET.value) else None
    records = await SnapshotRepo(db).list_all(selected)
    return CollectionList(collections=[
        CollectionResponse(
            contract=r.contract_address,
            token_type=r.token_standard,
            network=r.network,
            snapshot_block=r.snapshot_block,
            merkle_root=r.merkle_root,
            total_nfts=r.total_nfts,
            unique_owners=r.unique_owners,
            updated_at=r.refreshed_at,
        )
        for r in records
    ])
