from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple


_LOCATIONS_ENV = "SKATEWAY_LOCATIONS"
_CONTAINER_NAME_ENV = "COSMOS_CONTAINER_NAME"
_CONTAINER_PATH_ENV = "COSMOS_PERSISTENCE_PATH"
_HISTORY_DEFAULT_ENV = "HISTORY_DEFAULT_LIMIT"
_HISTORY_MAX_ENV = "HISTORY_MAX_LIMIT"
_WORKER_COUNT_ENV = "QUERY_WORKER_COUNT"
_STORE_TIMEOUT_ENV = "STORE_TIMEOUT_SECONDS"
_EXPOSE_ERRORS_ENV = "EXPOSE_ERROR_DETAILS"
_PORT_ENV = "PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_LOCATIONS = ("Dow's Lake", "Fifth Avenue", "NAC")


@dataclass(frozen=True)
class Settings:
    locations: Tuple[str, ...]
    container_name: str
    container_persistence_path: Optional[str]
    history_default_limit: int
    history_max_limit: int
    query_workers: int
    store_timeout_seconds: float
    expose_error_details: bool
    port: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
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


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_locations(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_LOCATIONS_ENV)
    if value is None:
        return default
    names: list[str] = []
    for part in value.split(","):
        name = part.strip()
        if name and name not in names:
            names.append(name)
    return tuple(names) or default


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
    max_limit = _read_positive_int(_HISTORY_MAX_ENV, 500)
    default_limit = min(_read_positive_int(_HISTORY_DEFAULT_ENV, 12), max_limit)
    return Settings(
        locations=_read_locations(DEFAULT_LOCATIONS),
        container_name=_read_str_env(_CONTAINER_NAME_ENV, "SensorAggregations"),
        container_persistence_path=_read_optional_env(
            _CONTAINER_PATH_ENV, "./tmp/aggregates.json"
        ),
        history_default_limit=default_limit,
        history_max_limit=max_limit,
        query_workers=_read_positive_int(_WORKER_COUNT_ENV, 3),
        store_timeout_seconds=_read_positive_float(_STORE_TIMEOUT_ENV, 5.0),
        expose_error_details=_read_bool(_EXPOSE_ERRORS_ENV, False),
        port=_read_positive_int(_PORT_ENV, 3000),
        log_level=_read_log_level("INFO"),
    )
