from __future__ import annotations
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api import router
from app.ws import router as ws_router
from logging_config import configure_logging
from services.bridge import build_default_bridge


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    bridge = build_default_bridge()
    bridge.start(asyncio.get_running_loop())
    try:
        yield
    finally:
        bridge.shutdown()
        build_default_bridge.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="Aquarium Feeder Bridge",
        description="Relays MQTT sensor telemetry to WebSocket clients and feeding commands back.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(router)
    app.include_router(ws_router)
    return app

app = create_app()
