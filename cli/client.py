from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import typer

from cli.config import CLIConfig


class ApiClient:
    """Minimal HTTP client for the sensor insights service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def list_sensors(self) -> List[Dict[str, Any]]:
        return self._get("/api/sensors")

    def statistics(self, hours: int) -> List[Dict[str, Any]]:
        return self._get("/api/sensors/statistics", params={"hours": hours})

    def aggregates(self, sensor_id: int, hours: int, period: str) -> List[Dict[str, Any]]:
        return self._get(
            f"/api/sensors/{sensor_id}/aggregates",
            params={"hours": hours, "period": period},
        )

    def anomalies(self, sensor_id: int, hours: int, z: float) -> List[Dict[str, Any]]:
        return self._get(
            f"/api/sensors/{sensor_id}/anomalies",
            params={"hours": hours, "z": z},
        )

    def get_anomaly_settings(self) -> Dict[str, Any]:
        return self._get("/api/settings/anomaly-detection")

    def save_anomaly_settings(self, z: float, window: int, hours: int) -> Dict[str, Any]:
        try:
            response = self._client.post(
                "/api/settings/anomaly-detection",
                json={"z": z, "window": window, "hours": hours},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return self._unwrap(response)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        return self._unwrap(response)

    @staticmethod
    def _unwrap(response: httpx.Response) -> Any:
        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("success", False):
            raise typer.BadParameter("Unexpected response payload from the service.")
        return payload.get("data")

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> None:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
