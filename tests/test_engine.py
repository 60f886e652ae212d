"""Strategy selection and fallback behaviour of the aggregation engine."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import List

import pytest

from models.records import Bucket, Period, ReadingPoint, TimeWindow
from services.aggregator import InMemoryAggregator
from services.breaker import AggregationCircuitBreaker
from services.engine import AggregationEngine
from services.errors import (
    CapabilityUnsupportedError,
    ComputationError,
    QueryExecutionError,
    SensorNotFoundError,
)

BASE = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
WINDOW = TimeWindow(after=BASE - timedelta(days=1))
READINGS = [
    ReadingPoint(value=10, timestamp=BASE),
    ReadingPoint(value=10, timestamp=BASE + timedelta(minutes=10)),
    ReadingPoint(value=10, timestamp=BASE + timedelta(minutes=20)),
    ReadingPoint(value=30, timestamp=BASE + timedelta(minutes=65)),
]
NATIVE_BUCKETS = [Bucket(start=BASE, avg=1.0, min=1.0, max=1.0, count=1)]


class CountingNative:
    name = "native"

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0
        self._lock = Lock()

    def aggregate(self, sensor_id: int, window: TimeWindow, period: Period) -> List[Bucket]:
        with self._lock:
            self.calls += 1
        if self.error is not None:
            raise self.error
        return list(NATIVE_BUCKETS)


class BrokenAggregator(InMemoryAggregator):
    def aggregate(self, sensor_id, window, period):  # type: ignore[override]
        raise ZeroDivisionError("boom")


def _engine(make_source, native=None) -> AggregationEngine:
    return AggregationEngine(fallback=InMemoryAggregator(make_source(READINGS)), native=native)


def test_native_result_is_returned_while_healthy(make_source) -> None:
    native = CountingNative()
    engine = _engine(make_source, native)

    assert engine.aggregate(1, WINDOW, Period.hour) == NATIVE_BUCKETS
    assert engine.aggregate(1, WINDOW, Period.hour) == NATIVE_BUCKETS
    assert native.calls == 2
    assert engine.native_enabled is True


@pytest.mark.parametrize(
    "error",
    [CapabilityUnsupportedError("no epoch function"), QueryExecutionError("syntax error")],
)
def test_native_failure_falls_back_and_is_never_retried(make_source, error) -> None:
    native = CountingNative(error=error)
    source = make_source(READINGS)
    engine = AggregationEngine(fallback=InMemoryAggregator(source), native=native)

    first = engine.aggregate(1, WINDOW, Period.hour)
    second = engine.aggregate(1, WINDOW, Period.hour)

    assert native.calls == 1
    assert source.calls == 2
    assert first == second
    assert [(bucket.count, bucket.avg) for bucket in first] == [(3, 10.0), (1, 30.0)]
    assert engine.breaker.is_tripped() is True
    assert engine.native_enabled is False


def test_demotion_is_logged_once(make_source, caplog) -> None:
    engine = _engine(make_source, CountingNative(error=QueryExecutionError("bad query")))

    with caplog.at_level(logging.WARNING, logger="services.engine"):
        for _ in range(5):
            engine.aggregate(1, WINDOW, Period.hour)

    warnings = [record for record in caplog.records if record.name == "services.engine"]
    assert len(warnings) == 1
    assert warnings[0].sensor_id == 1
    assert warnings[0].reason == "bad query"


def test_pre_tripped_breaker_skips_native(make_source) -> None:
    native = CountingNative()
    breaker = AggregationCircuitBreaker()
    breaker.trip()
    engine = AggregationEngine(
        fallback=InMemoryAggregator(make_source(READINGS)), native=native, breaker=breaker
    )

    buckets = engine.aggregate(1, WINDOW, Period.hour)

    assert native.calls == 0
    assert len(buckets) == 2


def test_engine_without_native_uses_fallback(make_source) -> None:
    engine = _engine(make_source, native=None)

    assert len(engine.aggregate(1, WINDOW, Period.hour)) == 2
    assert engine.native_enabled is False
    assert engine.breaker.is_tripped() is False


def test_unknown_sensor_is_not_treated_as_strategy_failure(make_source) -> None:
    native = CountingNative(error=SensorNotFoundError(5))
    engine = _engine(make_source, native)

    with pytest.raises(SensorNotFoundError):
        engine.aggregate(5, WINDOW, Period.hour)
    assert engine.breaker.is_tripped() is False


def test_fallback_failure_is_a_computation_error(make_source) -> None:
    engine = AggregationEngine(
        fallback=BrokenAggregator(make_source(READINGS)),
        native=CountingNative(error=QueryExecutionError("down")),
    )

    with pytest.raises(ComputationError) as excinfo:
        engine.aggregate(1, WINDOW, Period.hour)
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)
    assert engine.breaker.is_tripped() is True


def test_concurrent_failures_trip_once_and_all_callers_get_fallback(make_source, caplog) -> None:
    native = CountingNative(error=QueryExecutionError("down"))
    engine = _engine(make_source, native)

    with caplog.at_level(logging.WARNING, logger="services.engine"):
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(lambda _: engine.aggregate(1, WINDOW, Period.hour), range(32)))

    expected = InMemoryAggregator(make_source(READINGS)).aggregate(1, WINDOW, Period.hour)
    assert all(result == expected for result in results)
    assert len([r for r in caplog.records if r.name == "services.engine"]) == 1

    calls_before = native.calls
    engine.aggregate(1, WINDOW, Period.hour)
    assert native.calls == calls_before
