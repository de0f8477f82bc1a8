"""System-wide roll-up of the latest per-location safety status."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from app.schemas import AggregateRecord, SafetyStatus
from services.classifier import classify


@dataclass
class SystemStatusSnapshot:
    """Counts over the latest window of every known location."""

    safe: int = 0
    caution: int = 0
    unsafe: int = 0
    total: int = 0
    overall_status: SafetyStatus = SafetyStatus.safe


def roll_up(
    latest_by_location: Mapping[str, Optional[AggregateRecord]],
    locations: Iterable[str],
) -> SystemStatusSnapshot:
    """Combine per-location statuses, escalating Unsafe over Caution over Safe.

    Locations without data count toward ``total`` only.
    """

    snapshot = SystemStatusSnapshot()
    for location in locations:
        snapshot.total += 1
        record = latest_by_location.get(location)
        if record is None:
            continue
        status = classify(record.safety_status)
        if status is SafetyStatus.unsafe:
            snapshot.unsafe += 1
        elif status is SafetyStatus.caution:
            snapshot.caution += 1
        else:
            snapshot.safe += 1

    if snapshot.unsafe:
        snapshot.overall_status = SafetyStatus.unsafe
    elif snapshot.caution:
        snapshot.overall_status = SafetyStatus.caution
    return snapshot
