from __future__ import annotations

import json
import time
from typing import Any, Dict

import httpx
import typer
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect

from cli.config import CLIConfig


class BridgeClient:
    """HTTP and WebSocket client for a running bridge."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def health(self) -> Dict[str, Any]:
        return self._get("/health")

    def get_state(self) -> Dict[str, Any]:
        return self._get("/state")

    def send_command(self, command: Dict[str, Any]) -> Dict[str, Any]:
        """Send one feeding command and return the bridge's direct reply.

        Sensor envelopes pushed while waiting are skipped.
        """
        deadline = time.monotonic() + self._config.timeout
        try:
            with connect(
                self._config.websocket_url, open_timeout=self._config.timeout
            ) as ws:
                ws.send(json.dumps(command))
                while True:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError
                    message = json.loads(ws.recv(timeout=remaining))
                    if isinstance(message, dict) and "status" in message:
                        return message
        except TimeoutError:
            typer.secho(
                f"Timed out waiting for a reply from {self._config.websocket_url}.",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        except (OSError, WebSocketException) as exc:
            typer.secho(
                f"WebSocket request failed: {exc}", fg=typer.colors.RED, err=True
            )
            raise typer.Exit(code=1) from exc

    def _get(self, path: str) -> Dict[str, Any]:
        try:
            response = self._client.get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(f"Request failed: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
