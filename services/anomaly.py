"""Z-score outlier detection over raw readings."""

from __future__ import annotations

import math
from typing import Iterable, List

from models.records import AnomalyPoint, ReadingPoint, SensorId, TimeWindow
from services.aggregator import ReadingSource


class AnomalyDetector:
    def __init__(self, source: ReadingSource) -> None:
        self.source = source

    def detect(
        self, sensor_id: SensorId, window: TimeWindow, z_threshold: float
    ) -> List[AnomalyPoint]:
        readings = self.source.fetch_readings(sensor_id, window.after)
        return self.detect_readings(readings, z_threshold)

    @staticmethod
    def detect_readings(
        readings: Iterable[ReadingPoint], z_threshold: float
    ) -> List[AnomalyPoint]:
        """Flag readings whose population z-score magnitude is at least ``z_threshold``."""
        points = list(readings)
        if not points:
            return []

        values = [point.value for point in points]
        # A flat series has no spread to measure against.
        if min(values) == max(values):
            return []

        mean = sum(values) / len(values)
        variance = sum((value - mean) ** 2 for value in values) / len(values)
        std = math.sqrt(variance)
        if std == 0:
            return []

        anomalies = []
        for point in points:
            zscore = (point.value - mean) / std
            if abs(zscore) >= z_threshold:
                anomalies.append(
                    AnomalyPoint(timestamp=point.timestamp, value=point.value, zscore=zscore)
                )
        anomalies.sort(key=lambda anomaly: anomaly.timestamp)
        return anomalies
