from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_snapshot(payload: Dict[str, Optional[Dict[str, Any]]]) -> None:
    echo_heading("Latest Readings")
    pairs = []
    for sensor_id, entry in payload.items():
        if entry is None:
            pairs.append((sensor_id, "no data"))
            continue
        unit = entry.get("unit")
        value = f"{entry.get('value')} {unit}" if unit else f"{entry.get('value')}"
        pairs.append((sensor_id, f"{value} @ {entry.get('timestamp')}"))
    echo_key_values(pairs)


def _cell(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:g}"


def render_series(payload: Dict[str, Any]) -> None:
    labels = payload.get("labels") or []
    datasets: Dict[str, list] = payload.get("datasets") or {}
    echo_heading("History")
    if not labels:
        typer.echo("No data in the selected range.")
        return
    sensors = list(datasets)
    typer.echo("\t".join(["timestamp", *sensors]))
    for index, label in enumerate(labels):
        row = [_cell(datasets[sensor][index]) for sensor in sensors]
        typer.echo("\t".join([label, *row]))


def render_reading(reading: Dict[str, Any]) -> None:
    echo_heading("Stored Reading")
    echo_key_values(
        [
            ("id", reading.get("id")),
            ("cluster", reading.get("cluster")),
            ("sensor", reading.get("sensor")),
            ("value", reading.get("value")),
            ("unit", reading.get("unit")),
            ("timestamp", reading.get("timestamp")),
        ]
    )
