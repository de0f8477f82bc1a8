"""Result containers shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Tuple

from app.schemas import AggregateRecord


@dataclass(slots=True)
class LatestSnapshot:
    """Most recent window per location, in declared location order."""

    timestamp: datetime
    records: List[AggregateRecord] = field(default_factory=list)
    failed_locations: Tuple[str, ...] = ()

    def by_location(self) -> dict[str, AggregateRecord]:
        return {record.location: record for record in self.records}


@dataclass(slots=True)
class HistoryWindow:
    """Chronological windows for one location and the limit used to fetch them."""

    location: str
    limit: int
    records: List[AggregateRecord] = field(default_factory=list)
