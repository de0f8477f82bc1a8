"""Read-only facade over the aggregate container."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from app.schemas import AggregateRecord
from services.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_MAX_LIMIT = 500


class AggregateContainer(Protocol):
    def query_top_n(
        self, location: str, n: int, descending: bool = True
    ) -> list[AggregateRecord]: ...


class AggregateStoreAdapter:
    """Fetches latest and recent windows, always returning chronological order."""

    def __init__(self, container: AggregateContainer, max_limit: int = DEFAULT_MAX_LIMIT) -> None:
        self.container = container
        self.max_limit = max(1, max_limit)

    def clamp_limit(self, limit: int) -> int:
        return min(max(limit, 1), self.max_limit)

    def fetch_latest(self, location: str) -> Optional[AggregateRecord]:
        """Return the newest window for ``location`` or ``None`` when there is none yet."""
        records = self._query(location, 1)
        return records[0] if records else None

    def fetch_history(self, location: str, limit: int) -> list[AggregateRecord]:
        """Return at most ``limit`` of the newest windows, oldest first."""
        newest_first = self._query(location, self.clamp_limit(limit))

        chronological: list[AggregateRecord] = []
        for record in reversed(newest_first):
            if chronological and record.window_end <= chronological[-1].window_end:
                logger.warning(
                    "Dropping out-of-order window from history",
                    extra={"location": location, "window_end": record.window_end.isoformat()},
                )
                continue
            chronological.append(record)
        return chronological

    def _query(self, location: str, n: int) -> list[AggregateRecord]:
        try:
            records = self.container.query_top_n(location, n, descending=True)
        except Exception as exc:  # noqa: BLE001 - every store fault is classified here
            logger.error(
                "Aggregate store query failed",
                extra={"location": location, "limit": n, "reason": repr(exc)},
            )
            raise StoreUnavailableError(
                f"Aggregate store query failed for {location!r}.", location=location
            ) from exc
        return [record for record in records if record.location == location][:n]
