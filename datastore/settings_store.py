from __future__ import annotations

from typing import Callable, Optional, TypeVar

from sqlalchemy import select

from datastore.database import Database
from datastore.tables import AppSettingRow
from models.records import AnomalySettings
from services.errors import SettingsValidationError

Z_THRESHOLD_KEY = "anomaly.z_threshold"
WINDOW_SIZE_KEY = "anomaly.window_size"
LOOKBACK_HOURS_KEY = "anomaly.lookback_hours"

T = TypeVar("T")


class SettingsStore:
    """Key-value application settings persisted in the ``app_settings`` table."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def get(self, key: str) -> Optional[str]:
        with self.database.session() as session:
            row = session.scalars(select(AppSettingRow).where(AppSettingRow.key == key)).first()
            return row.value if row is not None else None

    def put(self, key: str, value: str) -> None:
        with self.database.session() as session:
            row = session.scalars(select(AppSettingRow).where(AppSettingRow.key == key)).first()
            if row is None:
                session.add(AppSettingRow(key=key, value=value))
            else:
                row.value = value

    def get_float(self, key: str, default: float) -> float:
        return self._get_parsed(key, float, default)

    def get_int(self, key: str, default: int) -> int:
        return self._get_parsed(key, int, default)

    def anomaly_settings(self) -> AnomalySettings:
        defaults = AnomalySettings()
        return AnomalySettings(
            z_threshold=self.get_float(Z_THRESHOLD_KEY, defaults.z_threshold),
            window_size=self.get_int(WINDOW_SIZE_KEY, defaults.window_size),
            lookback_hours=self.get_int(LOOKBACK_HOURS_KEY, defaults.lookback_hours),
        )

    def save_anomaly_settings(self, settings: AnomalySettings) -> None:
        validate_anomaly_settings(settings)
        self.put(Z_THRESHOLD_KEY, str(float(settings.z_threshold)))
        self.put(WINDOW_SIZE_KEY, str(int(settings.window_size)))
        self.put(LOOKBACK_HOURS_KEY, str(int(settings.lookback_hours)))

    def _get_parsed(self, key: str, parse: Callable[[str], T], default: T) -> T:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return parse(raw.strip())
        except ValueError:
            return default


def validate_anomaly_settings(settings: AnomalySettings) -> None:
    if not 1 <= settings.z_threshold <= 5:
        raise SettingsValidationError("Invalid z-score threshold (must be between 1 and 5)")
    if not 10 <= settings.window_size <= 100:
        raise SettingsValidationError("Invalid window size (must be between 10 and 100)")
    if not 1 <= settings.lookback_hours <= 48:
        raise SettingsValidationError("Invalid lookback hours (must be between 1 and 48)")
