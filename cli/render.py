from __future__ import annotations

from typing import Any, Dict, Iterable

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {'--' if value is None else value}")


def render_state(payload: Dict[str, Any]) -> None:
    sensor = payload.get("sensor") or {}
    echo_heading("Latest Readings")
    echo_key_values(
        [
            ("temperature", sensor.get("temperature")),
            ("pH", sensor.get("pH")),
            ("turbidity", sensor.get("turbidity")),
        ]
    )

    schedule = payload.get("schedule") or {}
    typer.echo()
    echo_heading("Feeding Schedule")
    if schedule.get("time") is None:
        typer.echo("No schedule received.")
    else:
        echo_key_values(
            [("time", schedule.get("time")), ("quantity", schedule.get("quantity"))]
        )

    typer.echo()
    typer.echo(f"Connected clients: {payload.get('clients', 0)}")


def render_reply(payload: Dict[str, Any]) -> None:
    status = payload.get("status")
    color = typer.colors.GREEN if status == "success" else typer.colors.RED
    typer.secho(f"{status}: {payload.get('message')}", fg=color)
