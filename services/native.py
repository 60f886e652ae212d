"""Aggregation delegated to the storage layer's own SQL grouping."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Protocol

from sqlalchemy.exc import SQLAlchemyError

from datastore.readings import BucketRow
from models.records import Bucket, Period, SensorId, TimeWindow
from services.errors import CapabilityUnsupportedError, QueryExecutionError


class BucketQuerySource(Protocol):
    def aggregate_buckets(
        self, sensor_id: SensorId, after: datetime, width_seconds: int
    ) -> List[BucketRow]:
        ...


class NativeAggregationStrategy:
    """Ask the store to bucket readings with a SQL ``GROUP BY``.

    Any storage failure is reported as a ``StrategyError`` subclass; an
    unknown sensor still raises ``SensorNotFoundError``.
    """

    name = "native"

    def __init__(self, source: BucketQuerySource) -> None:
        self.source = source

    def aggregate(self, sensor_id: SensorId, window: TimeWindow, period: Period) -> List[Bucket]:
        try:
            rows = self.source.aggregate_buckets(sensor_id, window.after, period.width_seconds)
        except NotImplementedError as exc:
            raise CapabilityUnsupportedError(str(exc)) from exc
        except SQLAlchemyError as exc:
            raise QueryExecutionError(str(exc)) from exc

        return [
            Bucket(
                start=datetime.fromtimestamp(epoch, tz=timezone.utc),
                avg=avg,
                min=minimum,
                max=maximum,
                count=count,
            )
            for epoch, avg, minimum, maximum, count in rows
        ]
