from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_reading, render_series, render_snapshot


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for reading from and feeding the Messstation dashboard.",
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
        help="Dashboard API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recent reading of every sensor."""
    state = _get_state(ctx)
    render_snapshot(state.client.latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    range_key: str = typer.Option("1h", "--range", "-r", help="Range key such as 1h, 5h, 1d or 1w."),
) -> None:
    """Print the aligned history table for charted sensors."""
    state = _get_state(ctx)
    render_series(state.client.history(range_key))


@app.command("export")
def export_command(
    ctx: typer.Context,
    types: List[str] = typer.Option(
        [], "--type", "-t", help="Sensor to include; repeat for several. Omit for all."
    ),
    span: str = typer.Option("1d", "--span", help="Time span key, or 'custom' with --start/--end."),
    start: Optional[str] = typer.Option(None, "--start", help="ISO-8601 start for custom spans."),
    end: Optional[str] = typer.Option(None, "--end", help="ISO-8601 end for custom spans."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", dir_okay=False, help="Write the CSV here instead of stdout."
    ),
) -> None:
    """Download readings as CSV."""
    state = _get_state(ctx)
    document = state.client.export_csv(types, span, start=start, end=end)
    if output is None:
        typer.echo(document)
        return
    output.write_text(document, encoding="utf-8")
    typer.secho(f"Export written to {output}", fg=typer.colors.GREEN)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    cluster: str = typer.Argument(..., help="Cluster reporting the value."),
    sensor: str = typer.Argument(..., help="Sensor channel name."),
    value: float = typer.Argument(..., help="Measured value."),
    unit: Optional[str] = typer.Option(None, "--unit", "-u", help="Unit of the value."),
    timestamp: Optional[str] = typer.Option(
        None, "--timestamp", help="ISO-8601 instant; the server uses now when omitted."
    ),
) -> None:
    """Store a single reading."""
    state = _get_state(ctx)
    payload = {"cluster": cluster, "sensor": sensor, "value": value}
    if unit:
        payload["unit"] = unit
    if timestamp:
        payload["timestamp"] = timestamp
    reading = state.client.ingest(payload)
    typer.secho("Reading stored.", fg=typer.colors.GREEN)
    render_reading(reading)
