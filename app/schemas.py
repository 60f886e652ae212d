"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from models.records import (
    AnomalyPoint,
    AnomalySettings,
    Bucket,
    LatestReading,
    ReadingPoint,
    SensorStats,
    StreamReading,
)

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every API payload."""

    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data: T) -> "ApiResponse[T]":
        return cls(success=True, data=data)


class SensorItem(BaseModel):
    id: int
    node_id: Optional[str] = None
    name: str
    type: str
    unit: str
    latest_value: Optional[float] = None
    latest_reading_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, item: LatestReading) -> "SensorItem":
        sensor = item.sensor
        return cls(
            id=sensor.id,
            node_id=sensor.node_id,
            name=sensor.name,
            type=sensor.sensor_type,
            unit=sensor.unit,
            latest_value=item.value,
            latest_reading_at=item.timestamp,
        )


class StatItem(BaseModel):
    sensor_id: int
    sensor_name: str
    sensor_type: str
    unit: str
    avg: float
    min: float
    max: float
    total_readings: int = Field(..., ge=0)

    @classmethod
    def from_domain(cls, stats: SensorStats) -> "StatItem":
        return cls(
            sensor_id=stats.sensor.id,
            sensor_name=stats.sensor.name,
            sensor_type=stats.sensor.sensor_type,
            unit=stats.sensor.unit,
            avg=stats.avg,
            min=stats.min,
            max=stats.max,
            total_readings=stats.count,
        )


class ReadingItem(BaseModel):
    value: float
    timestamp: datetime

    @classmethod
    def from_domain(cls, point: ReadingPoint) -> "ReadingItem":
        return cls(value=point.value, timestamp=point.timestamp)


class ReadingsPayload(BaseModel):
    readings: List[ReadingItem] = Field(default_factory=list)


class StreamItem(BaseModel):
    type: str
    unit: str
    value: float
    timestamp: datetime

    @classmethod
    def from_domain(cls, item: StreamReading) -> "StreamItem":
        return cls(type=item.sensor_type, unit=item.unit, value=item.value, timestamp=item.timestamp)


class StreamPayload(BaseModel):
    readings: List[StreamItem] = Field(default_factory=list)


class ReadingCreate(BaseModel):
    """Body for recording a new reading; the timestamp defaults to now."""

    value: float
    timestamp: Optional[datetime] = None


class AggregatePoint(BaseModel):
    bucket_start: datetime
    avg: float
    min: float
    max: float
    cnt: int = Field(..., ge=1)

    @classmethod
    def from_domain(cls, bucket: Bucket) -> "AggregatePoint":
        return cls(
            bucket_start=bucket.start,
            avg=bucket.avg,
            min=bucket.min,
            max=bucket.max,
            cnt=bucket.count,
        )


class AnomalyItem(BaseModel):
    timestamp: datetime
    value: float
    zscore: float

    @classmethod
    def from_domain(cls, point: AnomalyPoint) -> "AnomalyItem":
        return cls(timestamp=point.timestamp, value=point.value, zscore=point.zscore)


class AnomalySettingsPayload(BaseModel):
    z: float = Field(..., description="Z-score threshold, between 1 and 5.")
    window: int = Field(..., description="Rolling window size, between 10 and 100.")
    hours: int = Field(..., description="Lookback in hours, between 1 and 48.")

    @classmethod
    def from_domain(cls, settings: AnomalySettings) -> "AnomalySettingsPayload":
        return cls(z=settings.z_threshold, window=settings.window_size, hours=settings.lookback_hours)

    def to_domain(self) -> AnomalySettings:
        return AnomalySettings(z_threshold=self.z, window_size=self.window, lookback_hours=self.hours)


class MessagePayload(BaseModel):
    message: str
