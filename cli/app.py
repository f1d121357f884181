from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_barangay_risk,
    render_classification,
    render_ingest,
    render_latest_readings,
    render_statistics,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the flood monitor service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
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


@app.command("upload")
def upload_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
) -> None:
    """Upload a CSV file of sensor readings."""
    state = _get_state(ctx)
    typer.echo(f"Uploading {file} to {state.config.base_url} ...")
    payload = state.client.upload_readings(file)
    typer.secho(f"Upload accepted. readings={payload.get('accepted')}", fg=typer.colors.GREEN)
    typer.echo()
    render_ingest(payload)


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    sensor_id: str = typer.Argument(..., help="Sensor identifier."),
    period: Optional[str] = typer.Option(None, "--period", "-p", help="1h, 6h, 24h, 7d or 30d."),
    parameter: Optional[List[str]] = typer.Option(
        None,
        "--parameter",
        help="Parameter to aggregate; repeat for several. Defaults to all.",
    ),
) -> None:
    """Show windowed statistics and risk for a sensor."""
    state = _get_state(ctx)
    payload = state.client.get_statistics(sensor_id, period=period, parameters=parameter or ())
    render_statistics(payload)


@app.command("barangay")
def barangay_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Barangay name."),
    period: Optional[str] = typer.Option(None, "--period", "-p", help="1h, 6h, 24h, 7d or 30d."),
    parameter: Optional[str] = typer.Option(None, "--parameter", help="Parameter to classify."),
    min_level: Optional[str] = typer.Option(
        None, "--min-level", help="Only list sensors at or above this risk level."
    ),
) -> None:
    """Show the risk of every sensor in a barangay."""
    state = _get_state(ctx)
    payload = state.client.get_barangay_risk(
        name, period=period, parameter=parameter, min_level=min_level
    )
    render_barangay_risk(payload)


@app.command("latest")
def latest_command(
    ctx: typer.Context,
    barangay: Optional[str] = typer.Option(None, "--barangay", help="Only list sensors in this barangay."),
    period: Optional[str] = typer.Option(None, "--period", "-p", help="1h, 6h, 24h, 7d or 30d."),
) -> None:
    """Show the latest water level and risk of each sensor."""
    state = _get_state(ctx)
    payload = state.client.get_latest_readings(barangay=barangay, period=period)
    render_latest_readings(payload)


@app.command("classify")
def classify_command(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Metric kind, e.g. water_level."),
    value: float = typer.Argument(..., help="Metric value."),
) -> None:
    """Classify a single metric value."""
    state = _get_state(ctx)
    payload = state.client.classify(kind, value)
    render_classification(payload)
