from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

_META_KEYS = ("receivedAt", "status")


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Reading")
    if not payload:
        typer.echo("No reading received yet.")
        return

    status = payload.get("status") or {}
    echo_key_values(
        [
            ("receivedAt", payload.get("receivedAt")),
            ("tempLevel", status.get("tempLevel")),
            ("dayOrNight", status.get("dayOrNight")),
        ]
    )

    typer.echo()
    echo_heading("Fields")
    fields = [(key, value) for key, value in payload.items() if key not in _META_KEYS]
    if fields:
        echo_key_values(fields)
    else:
        typer.echo("No sensor fields.")


def render_alert(payload: Dict[str, Any]) -> None:
    echo_heading("Alert State")
    state = "sent" if payload.get("alertSent") else "armed"
    echo_key_values(
        [
            ("state", state),
            ("window", f"{payload.get('windowMin')}-{payload.get('windowMax')}"),
            ("lastAlertTime", payload.get("lastAlertTime") or "never"),
            ("inFlight", payload.get("inFlight")),
            ("cooldownSeconds", payload.get("cooldownSeconds")),
        ]
    )
