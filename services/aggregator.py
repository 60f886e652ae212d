"""In-memory bucketing of raw sensor readings."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import reduce
from itertools import groupby
from typing import Iterable, List, Protocol, Sequence

from models.records import Bucket, Period, ReadingPoint, SensorId, TimeWindow
from services.errors import ComputationError


class ReadingSource(Protocol):
    def fetch_readings(self, sensor_id: SensorId, after: datetime) -> List[ReadingPoint]:
        """Return readings newer than ``after``, newest first."""


def bucket_start_epoch(timestamp: datetime, width_seconds: int) -> int:
    """Start of the half-open ``[start, start + width)`` interval holding ``timestamp``.

    Naive timestamps are taken as UTC, matching how the store persists them.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    epoch = math.floor(timestamp.timestamp())
    return (epoch // width_seconds) * width_seconds


@dataclass(frozen=True, slots=True)
class BucketAccumulator:
    """Running sum/min/max/count for one bucket; ``accept`` returns a new value."""

    bucket_epoch: int
    total: float = 0.0
    minimum: float = math.inf
    maximum: float = -math.inf
    count: int = 0

    @classmethod
    def start(cls, bucket_epoch: int) -> "BucketAccumulator":
        return cls(bucket_epoch=bucket_epoch)

    def accept(self, value: float) -> "BucketAccumulator":
        return BucketAccumulator(
            bucket_epoch=self.bucket_epoch,
            total=self.total + value,
            minimum=min(self.minimum, value),
            maximum=max(self.maximum, value),
            count=self.count + 1,
        )

    def finalize(self) -> Bucket:
        if self.count == 0:
            raise ComputationError(f"Bucket {self.bucket_epoch} has no readings.")
        return Bucket(
            start=datetime.fromtimestamp(self.bucket_epoch, tz=timezone.utc),
            avg=self.total / self.count,
            min=self.minimum,
            max=self.maximum,
            count=self.count,
        )


class InMemoryAggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    name = "in_memory"

    def __init__(self, source: ReadingSource) -> None:
        self.source = source

    def aggregate(self, sensor_id: SensorId, window: TimeWindow, period: Period) -> List[Bucket]:
        readings = self.source.fetch_readings(sensor_id, window.after)
        return self.aggregate_readings(readings, period)

    def aggregate_readings(
        self, readings: Iterable[ReadingPoint], period: Period
    ) -> List[Bucket]:
        # Sources yield newest first; buckets are emitted oldest first.
        ordered: Sequence[ReadingPoint] = sorted(readings, key=lambda reading: reading.timestamp)
        if not ordered:
            return []

        width = period.width_seconds
        buckets: List[Bucket] = []
        for epoch, group in groupby(
            ordered, key=lambda reading: bucket_start_epoch(reading.timestamp, width)
        ):
            accumulator = reduce(
                lambda acc, reading: acc.accept(reading.value),
                group,
                BucketAccumulator.start(epoch),
            )
            buckets.append(accumulator.finalize())
        return buckets
