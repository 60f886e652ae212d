"""SQL-backed store for sensors and their raw readings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import BigInteger, Integer, cast, extract, func, literal_column, select
from sqlalchemy.orm import Session

from datastore.database import Database
from datastore.tables import SensorReadingRow, SensorRow
from models.records import ReadingPoint, Sensor, SensorId, StreamReading
from services.errors import SensorNotFoundError

# (bucket_epoch, avg, min, max, count)
BucketRow = Tuple[int, float, float, float, int]
# (avg, min, max, count); aggregates are None when no reading matched.
StatsRow = Tuple[Optional[float], Optional[float], Optional[float], int]


def to_storage_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_storage_time(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_sensor(row: SensorRow) -> Sensor:
    return Sensor(
        id=row.id,
        name=row.name,
        sensor_type=row.sensor_type,
        unit=row.unit,
        node_id=row.node_id,
        description=row.description,
        mqtt_topic=row.mqtt_topic,
        active=bool(row.is_active),
    )


def _to_point(row: SensorReadingRow) -> ReadingPoint:
    return ReadingPoint(value=row.value, timestamp=from_storage_time(row.created_at))


class ReadingStore:
    """Reads and writes sensors and readings.

    Readings come back newest first. Timestamps are stored as naive UTC and
    returned as timezone-aware UTC datetimes.
    """

    def __init__(self, database: Database) -> None:
        self.database = database

    def add_sensor(
        self,
        name: str,
        sensor_type: str,
        unit: str,
        node_id: Optional[str] = None,
        description: Optional[str] = None,
        mqtt_topic: Optional[str] = None,
        active: bool = True,
    ) -> Sensor:
        row = SensorRow(
            name=name,
            sensor_type=sensor_type,
            unit=unit,
            node_id=node_id,
            description=description,
            mqtt_topic=mqtt_topic,
            is_active=active,
        )
        with self.database.session() as session:
            session.add(row)
            session.flush()
            return _to_sensor(row)

    def get_sensor(self, sensor_id: SensorId) -> Sensor:
        with self.database.session() as session:
            return _to_sensor(self._require_sensor(session, sensor_id))

    def list_sensors(self) -> List[Sensor]:
        with self.database.session() as session:
            rows = session.scalars(select(SensorRow).order_by(SensorRow.id.asc())).all()
            return [_to_sensor(row) for row in rows]

    def count_sensors(self) -> int:
        with self.database.session() as session:
            return session.scalar(select(func.count(SensorRow.id))) or 0

    def add_reading(
        self,
        sensor_id: SensorId,
        value: float,
        timestamp: Optional[datetime] = None,
        raw_data: Optional[dict] = None,
    ) -> ReadingPoint:
        recorded_at = timestamp or datetime.now(timezone.utc)
        with self.database.session() as session:
            self._require_sensor(session, sensor_id)
            row = SensorReadingRow(
                sensor_id=sensor_id,
                value=float(value),
                raw_data=raw_data,
                created_at=to_storage_time(recorded_at),
            )
            session.add(row)
            session.flush()
            return _to_point(row)

    def add_readings(self, sensor_id: SensorId, points: Iterable[ReadingPoint]) -> int:
        with self.database.session() as session:
            self._require_sensor(session, sensor_id)
            rows = [
                SensorReadingRow(
                    sensor_id=sensor_id,
                    value=float(point.value),
                    created_at=to_storage_time(point.timestamp),
                )
                for point in points
            ]
            session.add_all(rows)
            return len(rows)

    def fetch_readings(self, sensor_id: SensorId, after: datetime) -> List[ReadingPoint]:
        """All readings for the sensor newer than ``after``, newest first."""
        return self._query_readings(sensor_id, after, limit=None)

    def latest_readings(
        self, sensor_id: SensorId, after: datetime, limit: int
    ) -> List[ReadingPoint]:
        return self._query_readings(sensor_id, after, limit=limit)

    def latest_reading(self, sensor_id: SensorId) -> Optional[ReadingPoint]:
        with self.database.session() as session:
            self._require_sensor(session, sensor_id)
            row = session.scalars(
                select(SensorReadingRow)
                .where(SensorReadingRow.sensor_id == sensor_id)
                .order_by(SensorReadingRow.created_at.desc(), SensorReadingRow.id.desc())
                .limit(1)
            ).first()
            return _to_point(row) if row is not None else None

    def global_stream(self, limit: int) -> List[StreamReading]:
        statement = (
            select(SensorReadingRow, SensorRow)
            .join(SensorRow, SensorReadingRow.sensor_id == SensorRow.id)
            .order_by(SensorReadingRow.created_at.desc(), SensorReadingRow.id.desc())
            .limit(limit)
        )
        with self.database.session() as session:
            return [
                StreamReading(
                    sensor_type=sensor.sensor_type,
                    unit=sensor.unit,
                    value=reading.value,
                    timestamp=from_storage_time(reading.created_at),
                )
                for reading, sensor in session.execute(statement).all()
            ]

    def stats_for_sensor(self, sensor_id: SensorId, after: datetime) -> StatsRow:
        value = SensorReadingRow.value
        statement = select(
            func.avg(value), func.min(value), func.max(value), func.count(SensorReadingRow.id)
        ).where(
            SensorReadingRow.sensor_id == sensor_id,
            SensorReadingRow.created_at > to_storage_time(after),
        )
        with self.database.session() as session:
            self._require_sensor(session, sensor_id)
            avg, minimum, maximum, count = session.execute(statement).one()
            return avg, minimum, maximum, int(count or 0)

    def aggregate_buckets(
        self, sensor_id: SensorId, after: datetime, width_seconds: int
    ) -> List[BucketRow]:
        """Group readings into epoch-aligned buckets inside the database.

        Raises ``NotImplementedError`` when the dialect has no epoch
        expression; query failures surface as ``SQLAlchemyError``.
        """
        bucket = self._epoch_bucket(width_seconds).label("bucket_epoch")
        value = SensorReadingRow.value
        statement = (
            select(
                bucket,
                func.avg(value),
                func.min(value),
                func.max(value),
                func.count(SensorReadingRow.id),
            )
            .where(
                SensorReadingRow.sensor_id == sensor_id,
                SensorReadingRow.created_at > to_storage_time(after),
            )
            .group_by(bucket)
            .order_by(bucket)
        )
        with self.database.session() as session:
            self._require_sensor(session, sensor_id)
            return [
                (int(epoch), float(avg), float(minimum), float(maximum), int(count))
                for epoch, avg, minimum, maximum, count in session.execute(statement).all()
            ]

    def _epoch_bucket(self, width_seconds: int):
        column = SensorReadingRow.created_at
        dialect = self.database.dialect_name
        # Inlined so the GROUP BY expression matches the selected one exactly.
        width = literal_column(str(int(width_seconds)), Integer)
        if dialect == "sqlite":
            epoch = cast(func.strftime("%s", column), Integer)
        elif dialect == "postgresql":
            epoch = cast(func.floor(extract("epoch", column)), BigInteger)
        else:
            raise NotImplementedError(
                f"Native aggregation is not supported on the {dialect!r} dialect."
            )
        # SQL integer division truncates toward zero; this floors pre-1970 epochs too.
        return epoch - ((epoch % width) + width) % width

    def _query_readings(
        self, sensor_id: SensorId, after: datetime, limit: Optional[int]
    ) -> List[ReadingPoint]:
        statement = (
            select(SensorReadingRow)
            .where(
                SensorReadingRow.sensor_id == sensor_id,
                SensorReadingRow.created_at > to_storage_time(after),
            )
            .order_by(SensorReadingRow.created_at.desc(), SensorReadingRow.id.desc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        with self.database.session() as session:
            self._require_sensor(session, sensor_id)
            return [_to_point(row) for row in session.scalars(statement).all()]

    @staticmethod
    def _require_sensor(session: Session, sensor_id: SensorId) -> SensorRow:
        row = session.get(SensorRow, sensor_id)
        if row is None:
            raise SensorNotFoundError(sensor_id)
        return row
