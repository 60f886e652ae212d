from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from services.breaker import AggregationCircuitBreaker


def test_breaker_starts_untripped() -> None:
    assert AggregationCircuitBreaker().is_tripped() is False


def test_trip_is_one_way_and_idempotent() -> None:
    breaker = AggregationCircuitBreaker()

    assert breaker.trip() is True
    assert breaker.is_tripped() is True
    assert breaker.trip() is False
    assert breaker.trip() is False
    assert breaker.is_tripped() is True


def test_concurrent_trips_report_a_single_transition() -> None:
    breaker = AggregationCircuitBreaker()
    barrier = threading.Barrier(16)

    def trip() -> bool:
        barrier.wait()
        return breaker.trip()

    with ThreadPoolExecutor(max_workers=16) as executor:
        results = list(executor.map(lambda _: trip(), range(16)))

    assert results.count(True) == 1
    assert breaker.is_tripped() is True


def test_readers_never_see_reset_after_trip() -> None:
    breaker = AggregationCircuitBreaker()
    observed_after_trip: list[bool] = []
    tripped = threading.Event()

    def reader() -> None:
        tripped.wait()
        for _ in range(1000):
            observed_after_trip.append(breaker.is_tripped())

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for thread in threads:
        thread.start()
    breaker.trip()
    tripped.set()
    for thread in threads:
        thread.join()

    assert observed_after_trip
    assert all(observed_after_trip)
