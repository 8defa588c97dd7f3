from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alert, render_reading


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the sensor telemetry relay.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


def _parse_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def build_reading(
    temp: Optional[float],
    ldr: Optional[float],
    fields: List[str],
    raw_json: Optional[str],
) -> Dict[str, Any]:
    """Assemble a reading payload from CLI options; later sources win."""
    reading: Dict[str, Any] = {}
    if raw_json is not None:
        try:
            parsed = json.loads(raw_json)
        except ValueError as exc:
            raise typer.BadParameter(f"--json is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise typer.BadParameter("--json must be a JSON object.")
        reading.update(parsed)
    for item in fields:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"--field expects key=value, got {item!r}.")
        reading[key] = _parse_value(value)
    if temp is not None:
        reading["ds18b20_temp"] = temp
    if ldr is not None:
        reading["ldr_percent"] = ldr
    return reading


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Relay base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    temp: Optional[float] = typer.Option(None, "--temp", "-t", help="Temperature in C (sent as ds18b20_temp)."),
    ldr: Optional[float] = typer.Option(None, "--ldr", "-l", help="Light level percentage (ldr_percent)."),
    field: List[str] = typer.Option(
        [],
        "--field",
        "-f",
        help="Extra sensor field as key=value; value is parsed as JSON when possible.",
    ),
    raw_json: Optional[str] = typer.Option(None, "--json", help="Full reading as a JSON object."),
) -> None:
    """Post a reading to the relay, as the device would."""
    state = _get_state(ctx)
    reading = build_reading(temp, ldr, field, raw_json)
    typer.echo(f"Sending reading to {state.config.base_url} ...")
    state.client.send_reading(reading)
    typer.secho("Reading accepted.", fg=typer.colors.GREEN)


@app.command("last")
def last_command(ctx: typer.Context) -> None:
    """Show the latest reading held by the relay."""
    state = _get_state(ctx)
    render_reading(state.client.get_last())


@app.command("alert")
def alert_command(ctx: typer.Context) -> None:
    """Show the alert controller state."""
    state = _get_state(ctx)
    render_alert(state.client.get_alert())


@app.command("serve")
def serve_command(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (defaults to HOST env or 0.0.0.0)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listening port (defaults to PORT env or 3000)."),
) -> None:
    """Run the relay server."""
    import uvicorn

    from settings import get_settings

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=host or settings.host,
        port=port or settings.port,
        log_config=None,
    )
