"""Exceptions raised by the aggregation and anomaly services."""

from __future__ import annotations


class SensorNotFoundError(LookupError):
    """Raised when a sensor identifier is unknown to the reading store."""

    def __init__(self, sensor_id: int) -> None:
        super().__init__(f"Sensor {sensor_id} not found.")
        self.sensor_id = sensor_id


class StrategyError(RuntimeError):
    """The native aggregation path failed; callers fall back to in-memory aggregation."""


class CapabilityUnsupportedError(StrategyError):
    """The storage backend cannot perform the delegated aggregation."""


class QueryExecutionError(StrategyError):
    """The delegated aggregation query failed while executing."""


class ComputationError(RuntimeError):
    """The in-memory computation failed and no further fallback exists."""


class SettingsValidationError(ValueError):
    """A settings value is outside its accepted range."""
