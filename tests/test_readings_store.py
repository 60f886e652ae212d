"""Tests for the SQL-backed reading store."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from datastore.database import Database
from datastore.readings import ReadingStore
from models.records import ReadingPoint
from services.errors import SensorNotFoundError

BASE = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)


def _add_sensor(store: ReadingStore, name: str = "Temperature") -> int:
    return store.add_sensor(name=name, sensor_type="temperature", unit="C", node_id="node-1").id


def test_add_sensor_and_list_in_id_order(store: ReadingStore) -> None:
    first = _add_sensor(store, "A")
    second = _add_sensor(store, "B")

    sensors = store.list_sensors()

    assert [sensor.id for sensor in sensors] == [first, second]
    assert sensors[0].name == "A"
    assert sensors[0].node_id == "node-1"
    assert store.count_sensors() == 2
    assert store.get_sensor(second).name == "B"


def test_fetch_readings_newest_first_with_strict_lower_bound(store: ReadingStore) -> None:
    sensor_id = _add_sensor(store)
    for minutes, value in [(0, 1.0), (5, 2.0), (10, 3.0)]:
        store.add_reading(sensor_id, value, BASE + timedelta(minutes=minutes))

    readings = store.fetch_readings(sensor_id, after=BASE)

    assert [reading.value for reading in readings] == [3.0, 2.0]
    assert readings[0].timestamp == BASE + timedelta(minutes=10)
    assert readings[0].timestamp.tzinfo is not None


def test_timestamps_are_normalized_to_utc(store: ReadingStore) -> None:
    sensor_id = _add_sensor(store)
    local = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

    store.add_reading(sensor_id, 1.0, local)

    (reading,) = store.fetch_readings(sensor_id, after=BASE - timedelta(hours=1))
    assert reading.timestamp == BASE
    assert reading.timestamp.utcoffset() == timedelta(0)


def test_unknown_sensor_raises_not_found(store: ReadingStore) -> None:
    with pytest.raises(SensorNotFoundError) as excinfo:
        store.fetch_readings(42, after=BASE)
    assert "42" in str(excinfo.value)

    with pytest.raises(SensorNotFoundError):
        store.add_reading(42, 1.0)
    with pytest.raises(SensorNotFoundError):
        store.aggregate_buckets(42, BASE, 3600)


def test_latest_readings_limit_and_latest_reading(store: ReadingStore) -> None:
    sensor_id = _add_sensor(store)
    store.add_readings(
        sensor_id,
        [ReadingPoint(value=float(i), timestamp=BASE + timedelta(minutes=i)) for i in range(5)],
    )

    latest = store.latest_readings(sensor_id, after=BASE - timedelta(hours=1), limit=2)

    assert [reading.value for reading in latest] == [4.0, 3.0]
    assert store.latest_reading(sensor_id).value == 4.0
    assert store.latest_reading(_add_sensor(store, "empty")) is None


def test_global_stream_joins_sensor_metadata(store: ReadingStore) -> None:
    temperature = _add_sensor(store)
    current = store.add_sensor(name="Current", sensor_type="current", unit="A").id
    store.add_reading(temperature, 21.5, BASE)
    store.add_reading(current, 0.4, BASE + timedelta(minutes=1))

    stream = store.global_stream(limit=10)

    assert [(item.sensor_type, item.unit, item.value) for item in stream] == [
        ("current", "A", 0.4),
        ("temperature", "C", 21.5),
    ]


def test_stats_for_sensor(store: ReadingStore) -> None:
    sensor_id = _add_sensor(store)
    for minutes, value in [(1, 2.0), (2, 4.0), (3, 9.0)]:
        store.add_reading(sensor_id, value, BASE + timedelta(minutes=minutes))

    avg, minimum, maximum, count = store.stats_for_sensor(sensor_id, after=BASE)

    assert avg == pytest.approx(5.0)
    assert (minimum, maximum, count) == (2.0, 9.0, 3)
    assert store.stats_for_sensor(sensor_id, after=BASE + timedelta(hours=1)) == (None, None, None, 0)


def test_aggregate_buckets_groups_in_sql(store: ReadingStore) -> None:
    sensor_id = _add_sensor(store)
    for minutes, value in [(0, 10.0), (10, 10.0), (20, 10.0), (65, 30.0)]:
        store.add_reading(sensor_id, value, BASE + timedelta(minutes=minutes))

    rows = store.aggregate_buckets(sensor_id, BASE - timedelta(hours=1), 3600)

    base_epoch = int(BASE.timestamp())
    assert rows == [
        (base_epoch, 10.0, 10.0, 10.0, 3),
        (base_epoch + 3600, 30.0, 30.0, 30.0, 1),
    ]


def test_aggregate_buckets_rejects_unsupported_dialect() -> None:
    store = ReadingStore(SimpleNamespace(dialect_name="oracle"))  # type: ignore[arg-type]

    with pytest.raises(NotImplementedError):
        store.aggregate_buckets(1, BASE, 3600)


def test_file_database_creates_parent_directory(tmp_path) -> None:
    path = tmp_path / "nested" / "sensors.db"
    database = Database(f"sqlite:///{path}")
    try:
        store = ReadingStore(database)
        sensor_id = _add_sensor(store)
        store.add_reading(sensor_id, 1.0, BASE)
        assert path.exists()
        assert database.ping() is True
    finally:
        database.dispose()

    reopened = Database(f"sqlite:///{path}")
    try:
        assert ReadingStore(reopened).count_sensors() == 1
    finally:
        reopened.dispose()
