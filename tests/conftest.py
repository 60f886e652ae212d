from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator, List

import pytest

from datastore.database import Database
from datastore.readings import ReadingStore
from models.records import ReadingPoint
from services.errors import SensorNotFoundError

BASE_TIME = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


class ListReadingSource:
    """In-memory reading source for sensor 1 that counts fetches."""

    def __init__(self, readings: Iterable[ReadingPoint], sensor_id: int = 1) -> None:
        self.readings = list(readings)
        self.sensor_id = sensor_id
        self.calls = 0

    def fetch_readings(self, sensor_id: int, after: datetime) -> List[ReadingPoint]:
        self.calls += 1
        if sensor_id != self.sensor_id:
            raise SensorNotFoundError(sensor_id)
        in_window = [reading for reading in self.readings if reading.timestamp > after]
        return sorted(in_window, key=lambda reading: reading.timestamp, reverse=True)


@pytest.fixture
def make_source() -> Callable[..., ListReadingSource]:
    return ListReadingSource


@pytest.fixture
def database() -> Iterator[Database]:
    db = Database("sqlite://")
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture
def store(database: Database) -> ReadingStore:
    return ReadingStore(database)
