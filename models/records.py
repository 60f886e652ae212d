"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional


SensorId = int


class Period(str, Enum):
    """Bucket width used when summarizing readings."""

    hour = "hour"
    day = "day"

    @property
    def width_seconds(self) -> int:
        return 86400 if self is Period.day else 3600

    @classmethod
    def parse(cls, value: Optional[str]) -> "Period":
        """Map user input to a period; anything unrecognized means hourly."""
        if isinstance(value, Period):
            return value
        candidate = (value or "").strip().lower()
        if candidate == cls.day.value:
            return cls.day
        return cls.hour


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Readings strictly newer than ``after`` are in scope; there is no upper bound."""

    after: datetime

    @classmethod
    def hours_back(cls, hours: float, now: Optional[datetime] = None) -> "TimeWindow":
        reference = now or datetime.now(timezone.utc)
        return cls(after=reference - timedelta(hours=hours))


@dataclass(frozen=True, slots=True)
class ReadingPoint:
    """A single raw observation for one sensor."""

    value: float
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class Bucket:
    """Reduced statistics for the readings of one fixed-width time interval."""

    start: datetime
    avg: float
    min: float
    max: float
    count: int


@dataclass(frozen=True, slots=True)
class AnomalyPoint:
    timestamp: datetime
    value: float
    zscore: float


@dataclass(frozen=True, slots=True)
class Sensor:
    id: SensorId
    name: str
    sensor_type: str
    unit: str
    node_id: Optional[str] = None
    description: Optional[str] = None
    mqtt_topic: Optional[str] = None
    active: bool = True


@dataclass(frozen=True, slots=True)
class LatestReading:
    """A sensor paired with its most recent reading, if any."""

    sensor: Sensor
    value: Optional[float]
    timestamp: Optional[datetime]


@dataclass(frozen=True, slots=True)
class StreamReading:
    sensor_type: str
    unit: str
    value: float
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class SensorStats:
    sensor: Sensor
    avg: float
    min: float
    max: float
    count: int


@dataclass(frozen=True, slots=True)
class AnomalySettings:
    z_threshold: float = 3.0
    window_size: int = 30
    lookback_hours: int = 6
