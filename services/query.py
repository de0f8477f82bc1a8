"""Query orchestration for the latest snapshot, history and overall status."""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional, Sequence, Tuple
from urllib.parse import unquote

from app.schemas import AggregateRecord
from datastore.mock_cosmos import build_default_container
from models.records import HistoryWindow, LatestSnapshot
from services.classifier import classify_record
from services.errors import InvalidLocationError, StoreUnavailableError
from services.rollup import SystemStatusSnapshot, roll_up
from services.store_adapter import AggregateStoreAdapter
from settings import get_settings

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 12


def decode_location(raw: str) -> str:
    """Undo URL-style encoding, including identifiers encoded more than once."""
    decoded = raw
    for _ in range(3):
        candidate = unquote(decoded)
        if candidate == decoded:
            break
        decoded = candidate
    return decoded.strip()


def resolve_limit(raw: Any, default: int, maximum: int) -> int:
    """Parse a caller-supplied limit, falling back to ``default`` when malformed."""
    if raw is None:
        return default
    if isinstance(raw, bool):
        return default
    if isinstance(raw, int):
        parsed = raw
    else:
        candidate = str(raw).strip()
        if not candidate:
            return default
        try:
            parsed = int(candidate)
        except ValueError:
            return default
    if parsed < 1:
        return default
    return min(parsed, maximum)


class QueryService:
    """Answers read requests using the store adapter and safety classifier."""

    def __init__(
        self,
        adapter: AggregateStoreAdapter,
        locations: Sequence[str],
        default_limit: int = DEFAULT_HISTORY_LIMIT,
        workers: int = 3,
        lookup_timeout: Optional[float] = 5.0,
    ) -> None:
        if not locations:
            raise ValueError("At least one location must be configured.")
        self.adapter = adapter
        self.locations: Tuple[str, ...] = tuple(locations)
        self.default_limit = adapter.clamp_limit(default_limit)
        self.lookup_timeout = lookup_timeout
        self.executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="latest-lookup"
        )

    def get_latest_snapshot(self) -> LatestSnapshot:
        """Latest window per location; failed lookups are omitted unless all fail."""
        started = time.perf_counter()
        timestamp = datetime.now(timezone.utc)
        futures: Dict[str, Future[Optional[AggregateRecord]]] = {
            location: self.executor.submit(self.adapter.fetch_latest, location)
            for location in self.locations
        }

        records: list[AggregateRecord] = []
        failed: list[str] = []
        for location, future in futures.items():
            try:
                record = future.result(timeout=self.lookup_timeout)
            except FutureTimeoutError:
                future.cancel()
                failed.append(location)
                logger.warning(
                    "Latest lookup timed out",
                    extra={"location": location, "reason": "timeout"},
                )
                continue
            except StoreUnavailableError as exc:
                failed.append(location)
                logger.warning(
                    "Latest lookup failed",
                    extra={"location": location, "reason": str(exc)},
                )
                continue
            if record is not None:
                records.append(classify_record(record))

        if len(failed) == len(self.locations):
            logger.error(
                "Every latest lookup failed",
                extra={"failed_count": len(failed)},
            )
            raise StoreUnavailableError("No location could be read from the aggregate store.")

        logger.debug(
            "Latest snapshot assembled",
            extra={
                "record_count": len(records),
                "failed_count": len(failed),
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        return LatestSnapshot(
            timestamp=timestamp,
            records=records,
            failed_locations=tuple(failed),
        )

    def get_history(self, location: str, limit: Any = None) -> HistoryWindow:
        """Chronological windows for one known location."""
        resolved_location = decode_location(location)
        if resolved_location not in self.locations:
            raise InvalidLocationError(resolved_location)

        resolved_limit = self.adapter.clamp_limit(
            resolve_limit(limit, self.default_limit, self.adapter.max_limit)
        )
        records = self.adapter.fetch_history(resolved_location, resolved_limit)
        return HistoryWindow(
            location=resolved_location,
            limit=resolved_limit,
            records=[classify_record(record) for record in records],
        )

    def get_overall_status(self) -> tuple[LatestSnapshot, SystemStatusSnapshot]:
        """Roll up one latest snapshot into a system-wide status."""
        snapshot = self.get_latest_snapshot()
        summary = roll_up(snapshot.by_location(), self.locations)
        logger.info(
            "Overall status computed",
            extra={"status": summary.overall_status.value, "failed_count": len(snapshot.failed_locations)},
        )
        return snapshot, summary

    def shutdown(self) -> None:
        """Release lookup workers during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)


@lru_cache
def build_default_query_service(
    workers: Optional[int] = None,
) -> QueryService:
    """Factory that wires the query service with the default container."""
    settings = get_settings()
    adapter = AggregateStoreAdapter(
        build_default_container(), max_limit=settings.history_max_limit
    )
    return QueryService(
        adapter=adapter,
        locations=settings.locations,
        default_limit=settings.history_default_limit,
        workers=workers or settings.query_workers,
        lookup_timeout=settings.store_timeout_seconds,
    )
