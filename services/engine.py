"""Strategy selection for bucketed aggregation."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from models.records import Bucket, Period, SensorId, TimeWindow
from services.aggregator import InMemoryAggregator
from services.breaker import AggregationCircuitBreaker
from services.errors import ComputationError, SensorNotFoundError, StrategyError

logger = logging.getLogger(__name__)


class AggregationStrategy(Protocol):
    name: str

    def aggregate(self, sensor_id: SensorId, window: TimeWindow, period: Period) -> List[Bucket]:
        ...


class AggregationEngine:
    """Prefer the native strategy until it fails once, then stay in memory.

    The breaker is shared by every caller of this engine instance. A native
    failure is never surfaced: the failing call is recomputed in memory.
    """

    def __init__(
        self,
        fallback: InMemoryAggregator,
        native: Optional[AggregationStrategy] = None,
        breaker: Optional[AggregationCircuitBreaker] = None,
    ) -> None:
        self.fallback = fallback
        self.native = native
        self.breaker = breaker or AggregationCircuitBreaker()

    @property
    def native_enabled(self) -> bool:
        return self.native is not None and not self.breaker.is_tripped()

    def aggregate(self, sensor_id: SensorId, window: TimeWindow, period: Period) -> List[Bucket]:
        if self.native is not None and not self.breaker.is_tripped():
            try:
                return self.native.aggregate(sensor_id, window, period)
            except StrategyError as exc:
                if self.breaker.trip():
                    logger.warning(
                        "Native aggregation failed; disabling it and falling back to in-memory computation.",
                        extra={"sensor_id": sensor_id, "strategy": self.native.name, "reason": str(exc)},
                    )
        return self._aggregate_in_memory(sensor_id, window, period)

    def _aggregate_in_memory(
        self, sensor_id: SensorId, window: TimeWindow, period: Period
    ) -> List[Bucket]:
        try:
            return self.fallback.aggregate(sensor_id, window, period)
        except (SensorNotFoundError, ComputationError):
            raise
        except Exception as exc:
            raise ComputationError(f"In-memory aggregation failed for sensor {sensor_id}: {exc}") from exc
