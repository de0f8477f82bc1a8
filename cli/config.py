from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_BASE_URL = "http://localhost:3000"
DEFAULT_REFRESH_INTERVAL = 30.0
DEFAULT_TIMEOUT = 10.0
DEFAULT_LOCATION = "Dow's Lake"

_BASE_URL_ENV = "API_BASE_URL"
_REFRESH_INTERVAL_ENV = "CLI_REFRESH_INTERVAL"
_TIMEOUT_ENV = "CLI_REQUEST_TIMEOUT"
_LOCATION_ENV = "CLI_DEFAULT_LOCATION"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str = DEFAULT_BASE_URL
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL
    request_timeout: float = DEFAULT_TIMEOUT
    default_location: str = DEFAULT_LOCATION


def _read_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def load_config(
    base_url: Optional[str] = None,
    refresh_interval: Optional[float] = None,
    request_timeout: Optional[float] = None,
    default_location: Optional[str] = None,
) -> CLIConfig:
    url = base_url or os.getenv(_BASE_URL_ENV) or DEFAULT_BASE_URL
    if refresh_interval is None:
        refresh_interval = _read_float(os.getenv(_REFRESH_INTERVAL_ENV), DEFAULT_REFRESH_INTERVAL)
    if request_timeout is None:
        request_timeout = _read_float(os.getenv(_TIMEOUT_ENV), DEFAULT_TIMEOUT)
    location = default_location or (os.getenv(_LOCATION_ENV) or "").strip() or DEFAULT_LOCATION
    return CLIConfig(
        base_url=url.rstrip("/"),
        refresh_interval=refresh_interval,
        request_timeout=request_timeout,
        default_location=location,
    )
