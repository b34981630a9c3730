"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.schemas import BridgeState
from services.bridge import FeederBridge, build_default_bridge

router = APIRouter()


def get_bridge() -> FeederBridge:
    return build_default_bridge()


@router.get(
    "/state",
    response_model=BridgeState,
    response_model_by_alias=True,
    summary="Latest sensor snapshot, pending feeding schedule and client count.",
)
async def get_state(bridge: FeederBridge = Depends(get_bridge)) -> BridgeState:
    return BridgeState(
        sensor=bridge.cache.read(),
        schedule=bridge.cache.read_schedule(),
        clients=bridge.registry.client_count(),
    )


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "Connect a WebSocket to / for live updates."}
