from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer
import uvicorn

from cli.client import BridgeClient
from cli.config import CLIConfig, load_config
from cli.render import render_reply, render_state
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: BridgeClient


app = typer.Typer(
    help="Utilities for running and talking to the aquarium feeder bridge.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Bridge base URL (defaults to BRIDGE_BASE_URL env or http://localhost:8081).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for HTTP responses and command replies.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = BridgeClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, "--port", help="Port to listen on."),
) -> None:
    """Run the bridge server."""
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=host or settings.bridge_host,
        port=port or settings.bridge_port,
        log_config=None,
    )


@app.command("health")
def health_command(ctx: typer.Context) -> None:
    """Check that the bridge is responding."""
    state = _get_state(ctx)
    payload = state.client.health()
    typer.secho(f"{state.config.base_url}: {payload.get('status')}", fg=typer.colors.GREEN)


@app.command("state")
def state_command(ctx: typer.Context) -> None:
    """Show the latest readings and the pending feeding schedule."""
    state = _get_state(ctx)
    render_state(state.client.get_state())


@app.command("feed")
def feed_command(
    ctx: typer.Context,
    quantity: float = typer.Argument(..., min=0, help="Amount of food to dispense."),
) -> None:
    """Trigger an instant feeding."""
    state = _get_state(ctx)
    reply = state.client.send_command({"feed_now": True, "quantity": _as_number(quantity)})
    render_reply(reply)


@app.command("schedule")
def schedule_command(
    ctx: typer.Context,
    time: str = typer.Argument(..., help="Feeding time, e.g. 08:00."),
    quantity: float = typer.Argument(..., min=0, help="Amount of food to dispense."),
) -> None:
    """Send a feeding schedule to the feeder."""
    state = _get_state(ctx)
    reply = state.client.send_command({"time": time, "quantity": _as_number(quantity)})
    render_reply(reply)


def _as_number(value: float) -> int | float:
    return int(value) if value.is_integer() else value
