from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import (
    render_aggregates,
    render_anomalies,
    render_sensors,
    render_settings,
    render_statistics,
)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for querying the sensor insights service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)
settings_app = typer.Typer(help="Show or change anomaly detection settings.")
app.add_typer(settings_app, name="settings")


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


@app.command("sensors")
def sensors_command(ctx: typer.Context) -> None:
    """List sensors with their latest reading."""
    state = _get_state(ctx)
    render_sensors(state.client.list_sensors())


@app.command("stats")
def stats_command(
    ctx: typer.Context,
    hours: int = typer.Option(24, "--hours", help="Lookback window in hours."),
) -> None:
    """Show per-sensor statistics."""
    state = _get_state(ctx)
    render_statistics(state.client.statistics(hours), hours)


@app.command("aggregates")
def aggregates_command(
    ctx: typer.Context,
    sensor_id: int = typer.Argument(..., help="Sensor identifier."),
    hours: int = typer.Option(24, "--hours", help="Lookback window in hours."),
    period: str = typer.Option("hour", "--period", help="Bucket width: hour or day."),
) -> None:
    """Summarize a sensor's readings into time buckets."""
    state = _get_state(ctx)
    buckets = state.client.aggregates(sensor_id, hours=hours, period=period)
    render_aggregates(sensor_id, period, buckets)


@app.command("anomalies")
def anomalies_command(
    ctx: typer.Context,
    sensor_id: int = typer.Argument(..., help="Sensor identifier."),
    hours: int = typer.Option(24, "--hours", help="Lookback window in hours."),
    z: float = typer.Option(3.0, "--z", help="Z-score threshold."),
) -> None:
    """List readings that are statistical outliers."""
    state = _get_state(ctx)
    anomalies = state.client.anomalies(sensor_id, hours=hours, z=z)
    render_anomalies(sensor_id, z, anomalies)


@settings_app.command("show")
def settings_show_command(ctx: typer.Context) -> None:
    """Display the stored anomaly detection settings."""
    state = _get_state(ctx)
    render_settings(state.client.get_anomaly_settings())


@settings_app.command("set")
def settings_set_command(
    ctx: typer.Context,
    z: float = typer.Option(..., "--z", help="Z-score threshold (1-5)."),
    window: int = typer.Option(..., "--window", help="Window size (10-100)."),
    hours: int = typer.Option(..., "--hours", help="Lookback hours (1-48)."),
) -> None:
    """Save anomaly detection settings."""
    state = _get_state(ctx)
    payload = state.client.save_anomaly_settings(z=z, window=window, hours=hours)
    typer.secho(payload.get("message", "Settings saved."), fg=typer.colors.GREEN)
