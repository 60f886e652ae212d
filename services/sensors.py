"""Sensor-facing operations used by the HTTP layer."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from datastore.database import Database, build_default_database
from datastore.readings import ReadingStore
from datastore.settings_store import SettingsStore
from models.records import (
    AnomalyPoint,
    AnomalySettings,
    Bucket,
    LatestReading,
    Period,
    ReadingPoint,
    SensorId,
    SensorStats,
    StreamReading,
    TimeWindow,
)
from services.aggregator import InMemoryAggregator
from services.anomaly import AnomalyDetector
from services.engine import AggregationEngine
from services.native import NativeAggregationStrategy
from settings import get_settings

logger = logging.getLogger(__name__)

MAX_LIMIT = 1000


def _clamp_limit(limit: int) -> int:
    return max(1, min(MAX_LIMIT, limit))


class SensorService:
    """Coordinates the reading store, aggregation engine and anomaly detector."""

    def __init__(
        self,
        store: ReadingStore,
        settings_store: SettingsStore,
        engine: AggregationEngine,
        detector: AnomalyDetector,
    ) -> None:
        self.store = store
        self.settings_store = settings_store
        self.engine = engine
        self.detector = detector

    def list_sensors(self) -> List[LatestReading]:
        items = []
        for sensor in self.store.list_sensors():
            latest = self.store.latest_reading(sensor.id)
            items.append(
                LatestReading(
                    sensor=sensor,
                    value=latest.value if latest else None,
                    timestamp=latest.timestamp if latest else None,
                )
            )
        return items

    def statistics(self, hours: float = 24) -> List[SensorStats]:
        window = TimeWindow.hours_back(hours)
        results = []
        for sensor in self.store.list_sensors():
            avg, minimum, maximum, count = self.store.stats_for_sensor(sensor.id, window.after)
            results.append(
                SensorStats(
                    sensor=sensor,
                    avg=avg if avg is not None else 0.0,
                    min=minimum if minimum is not None else 0.0,
                    max=maximum if maximum is not None else 0.0,
                    count=count,
                )
            )
        return results

    def readings(
        self, sensor_id: SensorId, hours: float = 2, limit: Optional[int] = None
    ) -> List[ReadingPoint]:
        window = TimeWindow.hours_back(hours)
        if limit is None:
            return self.store.fetch_readings(sensor_id, window.after)
        return self.store.latest_readings(sensor_id, window.after, _clamp_limit(limit))

    def stream(self, limit: int = 10) -> List[StreamReading]:
        return self.store.global_stream(_clamp_limit(limit))

    def record_reading(
        self, sensor_id: SensorId, value: float, timestamp: Optional[datetime] = None
    ) -> ReadingPoint:
        return self.store.add_reading(sensor_id, value, timestamp)

    def aggregates(
        self, sensor_id: SensorId, hours: float = 24, period: Optional[str] = "hour"
    ) -> List[Bucket]:
        resolved = Period.parse(period)
        buckets = self.engine.aggregate(sensor_id, TimeWindow.hours_back(hours), resolved)
        logger.debug(
            "Aggregated readings",
            extra={
                "sensor_id": sensor_id,
                "hours": hours,
                "period": resolved.value,
                "bucket_count": len(buckets),
            },
        )
        return buckets

    def anomalies(
        self, sensor_id: SensorId, hours: float = 24, z_threshold: float = 3.0
    ) -> List[AnomalyPoint]:
        anomalies = self.detector.detect(sensor_id, TimeWindow.hours_back(hours), z_threshold)
        logger.debug(
            "Detected anomalies",
            extra={
                "sensor_id": sensor_id,
                "hours": hours,
                "z_threshold": z_threshold,
                "anomaly_count": len(anomalies),
            },
        )
        return anomalies

    def anomaly_settings(self) -> AnomalySettings:
        return self.settings_store.anomaly_settings()

    def save_anomaly_settings(self, settings: AnomalySettings) -> AnomalySettings:
        self.settings_store.save_anomaly_settings(settings)
        return settings

    @property
    def native_aggregation_enabled(self) -> bool:
        return self.engine.native_enabled


def build_service(database: Database, native_enabled: bool = True) -> SensorService:
    """Wire a service around an existing database."""
    store = ReadingStore(database)
    engine = AggregationEngine(
        fallback=InMemoryAggregator(store),
        native=NativeAggregationStrategy(store) if native_enabled else None,
    )
    return SensorService(
        store=store,
        settings_store=SettingsStore(database),
        engine=engine,
        detector=AnomalyDetector(store),
    )


@lru_cache
def build_default_service() -> SensorService:
    """Factory that wires the service from environment settings."""
    settings = get_settings()
    return build_service(
        build_default_database(), native_enabled=settings.native_aggregation_enabled
    )
