import asyncio
import contextlib
import logging

from fastapi import FastAPI

from roomrelay.api.v1.router import router as v1_router
from roomrelay.api.ws_rooms import router as ws_router
from roomrelay.core import settings
from roomrelay.runtime.rooms import registry, sweep_idle_rooms

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(title="roomrelay API", version="0.1.0")
app.include_router(v1_router, prefix="/v1")
app.include_router(ws_router)


@app.on_event("startup")
async def startup_event():
    """Bring the schema up to date, then start background eviction of idle rooms."""
    await registry.store.ensure_schema()
    app.state.sweeper = asyncio.create_task(sweep_idle_rooms())


@app.on_event("shutdown")
async def shutdown_event():
    sweeper = getattr(app.state, "sweeper", None)
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
