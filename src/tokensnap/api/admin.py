from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncEngine

from tokensnap.container import Container
from tokensnap.db.session import create_tables

router = APIRouter(prefix="/api", tags=["admin"])


@inject
def get_engine(engine: AsyncEngine = Depends(Provide[Container.engine])) -> AsyncEngine:
    return engine


@router.post("/init")
async def init_database(engine: AsyncEngine = Depends(get_engine)) -> dict:
    """Create the snapshot cache tables if they do not exist yet."""
    await create_tables(engine)
    return {"success": True, "message": "Database initialized"}
