from datetime import timedelta
from typing import AsyncGenerator

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from tokensnap.config import Settings
from tokensnap.container import Container
from tokensnap.db.repos.snapshot_repo import SnapshotRepo
from tokensnap.engine.admission import AdmissionGate
from tokensnap.engine.snapshot_service import SnapshotService, SourceFactory


@inject
async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(Provide[Container.session_factory]),
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@inject
def get_settings(settings: Settings = Depends(Provide[Container.settings])) -> Settings:
    return settings


@inject
def get_admission_gate(gate: AdmissionGate = Depends(Provide[Container.admission_gate])) -> AdmissionGate:
    return gate


@inject
def get_source_factory(factory: SourceFactory = Depends(Provide[Container.source_factory])) -> SourceFactory:
    return factory


def get_snapshot_service(
    db: AsyncSession = Depends(get_db),
    gate: AdmissionGate = Depends(get_admission_gate),
    source_factory: SourceFactory = Depends(get_source_factory),
    settings: Settings = Depends(get_settings),
) -> SnapshotService:
    """SnapshotService bound to this request's session and the process-wide admission gate."""
    return SnapshotService(
        source_factory=source_factory,
        gate=gate,
        shared_token=settings.hypersync_bearer_token,
        repo=SnapshotRepo(db),
        cache_ttl=timedelta(seconds=settings.cache_ttl_seconds),
    )
