from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def echo_rows(rows: List[Dict[str, Any]], columns: Sequence[str], empty: str) -> None:
    if not rows:
        typer.echo(empty)
        return
    typer.echo("  ".join(columns))
    for row in rows:
        typer.echo("  ".join(_format(row.get(column)) for column in columns))


def _format(value: Any) -> str:
    if isinstance(value, float):
        return f"{value:.3f}"
    return "-" if value is None else str(value)


def render_sensors(sensors: List[Dict[str, Any]]) -> None:
    echo_heading("Sensors")
    echo_rows(
        sensors,
        ("id", "name", "type", "unit", "latest_value", "latest_reading_at"),
        "No sensors registered.",
    )


def render_statistics(stats: List[Dict[str, Any]], hours: int) -> None:
    echo_heading(f"Statistics (last {hours}h)")
    echo_rows(
        stats,
        ("sensor_id", "sensor_name", "avg", "min", "max", "total_readings"),
        "No sensors registered.",
    )


def render_aggregates(sensor_id: int, period: str, buckets: List[Dict[str, Any]]) -> None:
    echo_heading(f"Aggregates for sensor {sensor_id} ({period})")
    echo_rows(buckets, ("bucket_start", "avg", "min", "max", "cnt"), "No readings in window.")


def render_anomalies(sensor_id: int, z: float, anomalies: List[Dict[str, Any]]) -> None:
    echo_heading(f"Anomalies for sensor {sensor_id} (|z| >= {z})")
    echo_rows(anomalies, ("timestamp", "value", "zscore"), "No anomalies detected.")


def render_settings(settings: Dict[str, Any]) -> None:
    echo_heading("Anomaly Detection Settings")
    echo_key_values(
        [
            ("z", settings.get("z")),
            ("window", settings.get("window")),
            ("hours", settings.get("hours")),
        ]
    )
