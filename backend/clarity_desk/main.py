from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes.dashboard import router as dashboard_router
from .routes.records import router as records_router
from .routes.requests import router as requests_router
from .routes.settings import router as settings_router
from .routes.shared import get_connectivity, get_file_manager
from .routes.sync import router as sync_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    fm = get_file_manager()
    monitor = get_connectivity()
    watcher = asyncio.create_task(
        monitor.watch(lambda: fm.get_settings().connectivity.probe_interval_seconds)
    )
    logger.info("Connectivity watcher started (probe_url=%r)", monitor.probe_url)
    try:
        yield
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher
        await monitor.drain_listeners()


app = FastAPI(title="Clarity Desk Backend", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(requests_router)
app.include_router(records_router)
app.include_router(sync_router)
app.include_router(dashboard_router)
app.include_router(settings_router)


@app.get("/health")
def health() -> dict:
    return {"ok": True}
