"""Read-path validation of persisted safety classifications."""

from __future__ import annotations

import logging
from typing import Any

from app.schemas import AggregateRecord, SafetyStatus

logger = logging.getLogger(__name__)

_KNOWN_STATUSES = {status.value.lower(): status for status in SafetyStatus}


def classify(value: Any) -> SafetyStatus:
    """Map a stored status to a known value, treating anything else as unsafe.

    Ingestion owns the classification; this only trusts it when it is one of
    the three known values (compared case-insensitively after trimming).
    """

    if isinstance(value, SafetyStatus):
        return value
    if isinstance(value, str):
        status = _KNOWN_STATUSES.get(value.strip().lower())
        if status is not None:
            return status
    logger.warning(
        "Unrecognised safety status, treating as Unsafe",
        extra={"status": repr(value)},
    )
    return SafetyStatus.unsafe


def classify_record(record: AggregateRecord) -> AggregateRecord:
    """Return a copy of ``record`` carrying its validated safety status."""

    status = classify(record.safety_status)
    if record.safety_status == status.value:
        return record
    return record.model_copy(update={"safety_status": status.value})
