import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from tokensnap.api.admin import router as admin_router
from tokensnap.api.collections import router as collections_router
from tokensnap.api.snapshot import router as snapshot_router
from tokensnap.container import Container

logger = logging.getLogger("tokensnap.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    container = Container()
    app.state.container = container
    yield
    engine = container.engine()
    await engine.dispose()


app = FastAPI(title="tokensnap", version="0.1.0", lifespan=lifespan)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled error on %s %s:\n%s", request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Retry-After", "X-Snapshot-Partial"],
)

app.include_router(snapshot_router)
app.include_router(collections_router)
app.include_router(admin_router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}
