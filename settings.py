from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_DATABASE_URL_ENV = "SENSOR_DATABASE_URL"
_NATIVE_AGGREGATION_ENV = "NATIVE_AGGREGATION_ENABLED"
_SEED_DEMO_DATA_ENV = "SEED_DEMO_DATA"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    native_aggregation_enabled: bool
    seed_demo_data: bool
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in _TRUE_VALUES:
        return True
    if candidate in _FALSE_VALUES:
        return False
    return default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        database_url=_read_str_env(_DATABASE_URL_ENV, "sqlite:///./tmp/sensors.db"),
        native_aggregation_enabled=_read_bool_env(_NATIVE_AGGREGATION_ENV, True),
        seed_demo_data=_read_bool_env(_SEED_DEMO_DATA_ENV, False),
        log_level=_read_log_level("INFO"),
    )
