from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0


@dataclass(frozen=True)
class CLIConfig:
    """Where the CLI sends requests and how long it waits for each one."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT


def _positive_float(raw: Optional[str], fallback: float) -> float:
    try:
        value = float((raw or "").strip())
    except ValueError:
        return fallback
    return value if value > 0 else fallback


def load_config(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
) -> CLIConfig:
    """Command line options win over ``API_BASE_URL`` / ``CLI_HTTP_TIMEOUT``."""
    url = (base_url or os.getenv("API_BASE_URL") or DEFAULT_BASE_URL).strip()
    if timeout is None:
        timeout = _positive_float(os.getenv("CLI_HTTP_TIMEOUT"), DEFAULT_TIMEOUT)
    return CLIConfig(base_url=url.rstrip("/"), timeout=timeout)
