"""Shared fixtures for the skateway monitor tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pytest

from app.schemas import AggregateRecord
from datastore.mock_cosmos import MockCosmosContainer

BASE_TIME = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
LOCATIONS = ("Dow's Lake", "Fifth Avenue", "NAC")


def build_record(
    location: str = "Dow's Lake",
    minutes: int = 0,
    status: str = "Safe",
    **overrides: Any,
) -> AggregateRecord:
    values: dict[str, Any] = {
        "location": location,
        "window_end": BASE_TIME + timedelta(minutes=minutes),
        "avg_ice_thickness": 32.0,
        "min_ice_thickness": 30.0,
        "max_ice_thickness": 35.0,
        "avg_surface_temperature": -6.0,
        "min_surface_temperature": -8.0,
        "max_surface_temperature": -4.0,
        "max_snow_accumulation": 2.5,
        "avg_external_temperature": -12.0,
        "reading_count": 30,
        "safety_status": status,
    }
    values.update(overrides)
    return AggregateRecord(**values)


@pytest.fixture()
def make_record() -> Callable[..., AggregateRecord]:
    return build_record


@pytest.fixture()
def container() -> MockCosmosContainer:
    return MockCosmosContainer(name="test")


class FailingContainer:
    """Container double that fails for selected locations."""

    def __init__(self, inner: MockCosmosContainer, failing: set[str] | None = None) -> None:
        self.inner = inner
        self.failing = failing
        self.calls: list[tuple[str, int]] = []

    def query_top_n(self, location: str, n: int, descending: bool = True):
        self.calls.append((location, n))
        if self.failing is None or location in self.failing:
            raise ConnectionError(f"connection reset while reading {location}")
        return self.inner.query_top_n(location, n, descending=descending)
