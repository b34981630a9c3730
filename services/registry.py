"""Connected UI clients and fan-out of sensor updates."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future
from threading import Lock
from typing import Any, Dict, Optional, Protocol

from fastapi.websockets import WebSocketState
from pydantic import BaseModel

from app.schemas import SensorEnvelope
from services.state import LatestStateCache

logger = logging.getLogger(__name__)


class ClientConnection(Protocol):
    client_state: WebSocketState
    application_state: WebSocketState

    async def send_text(self, data: str) -> None: ...


def is_open(conn: ClientConnection) -> bool:
    return (
        conn.client_state == WebSocketState.CONNECTED
        and conn.application_state == WebSocketState.CONNECTED
    )


def describe(conn: Any) -> str:
    address = getattr(conn, "client", None)
    if address is None:
        return f"conn-{id(conn):x}"
    host = getattr(address, "host", None)
    port = getattr(address, "port", None)
    return f"{host}:{port}" if host is not None else str(address)


class ClientRegistry:
    """Tracks open sockets and broadcasts envelopes to all of them.

    ``broadcast`` may be called from any thread; sends are scheduled on the
    event loop bound via :meth:`bind_loop`, one coroutine per client, so a
    slow client only delays its own delivery.
    """

    def __init__(self, cache: LatestStateCache) -> None:
        self._cache = cache
        self._clients: Dict[int, ClientConnection] = {}
        self._lock = Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    async def connect(self, conn: ClientConnection) -> None:
        """Register ``conn`` and catch it up with the last known readings."""
        with self._lock:
            self._clients[id(conn)] = conn
            count = len(self._clients)
        logger.info(
            "Client connected", extra={"client": describe(conn), "client_count": count}
        )

        if not self._cache.has_data():
            return
        envelope = SensorEnvelope(data=self._cache.read())
        await self._send(conn, envelope.model_dump_json(by_alias=True))

    def disconnect(self, conn: ClientConnection) -> None:
        with self._lock:
            removed = self._clients.pop(id(conn), None)
            count = len(self._clients)
        if removed is not None:
            logger.info(
                "Client disconnected",
                extra={"client": describe(conn), "client_count": count},
            )

    def broadcast(self, envelope: BaseModel) -> list[Future[None]]:
        """Send ``envelope`` to every open client; closed sockets are skipped."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug("No event loop bound; dropping broadcast")
            return []

        text = envelope.model_dump_json(by_alias=True)
        with self._lock:
            targets = list(self._clients.values())

        futures: list[Future[None]] = []
        for conn in targets:
            if not is_open(conn):
                continue
            futures.append(asyncio.run_coroutine_threadsafe(self._send(conn, text), loop))
        return futures

    async def _send(self, conn: ClientConnection, text: str) -> None:
        try:
            await conn.send_text(text)
        except Exception:
            logger.debug(
                "Dropping client after failed send",
                extra={"client": describe(conn)},
                exc_info=True,
            )
            self.disconnect(conn)
