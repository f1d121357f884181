from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer

_RISK_COLORS = {
    "low": typer.colors.GREEN,
    "moderate": typer.colors.YELLOW,
    "high": typer.colors.MAGENTA,
    "extreme": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def echo_risk(risk: Optional[Dict[str, Any]], indent: str = "") -> None:
    if not risk:
        typer.echo(f"{indent}risk: n/a")
        return
    level = risk.get("level")
    typer.secho(f"{indent}risk: {risk.get('label', level)}", fg=_RISK_COLORS.get(level))


def _render_statistics(name: str, item: Dict[str, Any]) -> None:
    stats = item.get("statistics") or {}
    typer.echo(f"  {name}:")
    if not stats.get("count"):
        typer.echo(f"    no data ({stats.get('total_observed', 0)} readings observed)")
    else:
        for key in ("count", "min", "max", "mean", "latest", "latest_at"):
            typer.echo(f"    {key}: {stats.get(key)}")
    echo_risk(item.get("risk"), indent="    ")


def render_ingest(payload: Dict[str, Any]) -> None:
    echo_heading("Ingest Result")
    echo_key_values([("accepted", payload.get("accepted"))])
    for parameter, count in (payload.get("per_parameter_count") or {}).items():
        typer.echo(f"  - {parameter}: {count}")

    errors = payload.get("errors") or []
    typer.echo()
    echo_heading("Errors")
    if errors:
        for error in errors:
            typer.echo(f"  - row {error.get('row_number')}: {error.get('reason')}")
    else:
        typer.echo("No errors recorded.")


def render_statistics(payload: Dict[str, Any]) -> None:
    echo_heading("Sensor Statistics")
    time_range = payload.get("time_range") or {}
    echo_key_values(
        [
            ("sensor_id", payload.get("sensor_id")),
            ("barangay", payload.get("barangay")),
            ("period", payload.get("period")),
            ("start", time_range.get("start")),
            ("end", time_range.get("end")),
            ("total_readings", payload.get("total_readings")),
        ]
    )
    statistics = payload.get("statistics") or {}
    typer.echo()
    echo_heading("Parameters")
    if not statistics:
        typer.echo("No parameters recorded.")
    for name, item in statistics.items():
        _render_statistics(name, item)


def render_barangay_risk(payload: Dict[str, Any]) -> None:
    echo_heading("Barangay Risk")
    echo_key_values(
        [
            ("barangay", payload.get("barangay")),
            ("parameter", payload.get("parameter")),
            ("period", payload.get("period")),
            ("min_level", payload.get("min_level")),
        ]
    )
    echo_risk(payload.get("highest_risk"))
    typer.echo("risk_summary:")
    for level, count in (payload.get("risk_summary") or {}).items():
        typer.echo(f"  - {level}: {count}")
    typer.echo()
    echo_heading("Sensors")
    for sensor_id, item in (payload.get("sensors") or {}).items():
        _render_statistics(sensor_id, item)


def render_classification(payload: Dict[str, Any]) -> None:
    echo_heading("Classification")
    echo_key_values([("kind", payload.get("kind")), ("value", payload.get("value"))])
    echo_risk(payload.get("risk"))
    if payload.get("alert"):
        typer.echo(f"alert: {payload['alert']}")
    for vocabulary, label in (payload.get("labels") or {}).items():
        typer.echo(f"  {vocabulary}: {label}")


def render_latest_readings(payload: Dict[str, Any]) -> None:
    echo_heading("Latest Readings")
    echo_key_values(
        [
            ("parameter", payload.get("parameter")),
            ("timestamp", payload.get("timestamp")),
            ("total_sensors", payload.get("total_sensors")),
        ]
    )
    sensors = payload.get("sensors") or []
    if not sensors:
        typer.echo("No sensors found.")
    for item in sensors:
        typer.echo(f"  {item.get('sensor_id')} ({item.get('barangay') or 'unassigned'}):")
        latest = item.get("latest_reading")
        typer.echo(f"    latest: {'n/a' if latest is None else latest} at {item.get('latest_at') or 'n/a'}")
        echo_risk(item.get("risk"), indent="    ")
