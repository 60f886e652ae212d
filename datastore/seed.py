"""Demo data for local runs."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Optional

from datastore.readings import ReadingStore
from models.records import ReadingPoint

logger = logging.getLogger(__name__)

READINGS_PER_SENSOR = 300

# name, sensor_type, unit, node_id, mqtt_topic, base value, spread
_DEMO_SENSORS = (
    ("DHT11 Temperature", "temperature", "°C", "node-1", "iot/esp32_node1/temperature", 21.0, 2.0),
    ("DHT11 Humidity", "humidity", "%", "node-1", "iot/esp32_node1/humidity", 50.0, 2.0),
    ("Soil Moisture", "soil_moisture", "%", "node-2", "iot/esp32_node2/soil_moisture", 35.0, 2.0),
    ("ACS712 Current", "current", "A", "node-3", "iot/esp32_node3/current", 0.5, 0.05),
)


def seed_demo_data(store: ReadingStore, now: Optional[datetime] = None, seed: int = 42) -> int:
    """Populate an empty store with four sensors and one reading per minute.

    Returns the number of readings written; nothing is written when sensors
    already exist.
    """
    if store.count_sensors() > 0:
        return 0

    rng = random.Random(seed)
    reference = now or datetime.now(timezone.utc)
    written = 0
    for name, sensor_type, unit, node_id, topic, base, spread in _DEMO_SENSORS:
        sensor = store.add_sensor(
            name=name,
            sensor_type=sensor_type,
            unit=unit,
            node_id=node_id,
            mqtt_topic=topic,
        )
        points = [
            ReadingPoint(
                value=base + rng.gauss(0.0, 1.0) * spread,
                timestamp=reference - timedelta(minutes=READINGS_PER_SENSOR - i),
            )
            for i in range(READINGS_PER_SENSOR)
        ]
        written += store.add_readings(sensor.id, points)
        logger.info("Seeded demo sensor %s", name, extra={"sensor_id": sensor.id, "reading_count": len(points)})
    return written
