"""WebSocket endpoint shared by the UI clients."""

from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from services.bridge import build_default_bridge

router = APIRouter()


@router.websocket("/")
async def client_socket(websocket: WebSocket) -> None:
    bridge = build_default_bridge()
    await websocket.accept()
    try:
        await bridge.registry.connect(websocket)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            await bridge.router.on_client_message(websocket, raw)
    except WebSocketDisconnect:
        pass
    finally:
        bridge.registry.disconnect(websocket)
