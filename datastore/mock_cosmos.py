from __future__ import annotations
import bisect
import json
import logging
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, List, Optional

from app.schemas import AggregateRecord
from settings import get_settings

logger = logging.getLogger(__name__)


class MockCosmosContainer:
    """Append-only container of aggregate windows keyed by location."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._items: Dict[str, List[AggregateRecord]] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def put_item(self, item: AggregateRecord) -> None:
        with self._lock:
            self._insert(item.model_copy(deep=True))
            self._persist()

    def query_top_n(
        self, location: str, n: int, descending: bool = True
    ) -> list[AggregateRecord]:
        """Return up to ``n`` windows for ``location`` ordered by window end."""

        if n < 1:
            return []
        with self._lock:
            windows = self._items.get(location, [])
            selected = windows[-n:][::-1] if descending else windows[:n]
            return [item.model_copy(deep=True) for item in selected]

    def _insert(self, item: AggregateRecord) -> None:
        windows = self._items.setdefault(item.location, [])
        ends = [window.window_end for window in windows]
        index = bisect.bisect_left(ends, item.window_end)
        if index < len(ends) and ends[index] == item.window_end:
            raise ValueError(
                f"Window ending {item.window_end.isoformat()} already stored for "
                f"location {item.location!r}."
            )
        windows.insert(index, item)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = [
            item.model_dump(mode="json", by_alias=True)
            for windows in self._items.values()
            for item in windows
        ]
        self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "[]"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = []

        for position, payload in enumerate(data):
            try:
                self._insert(AggregateRecord.model_validate(payload))
            except ValueError as exc:
                logger.warning(
                    "Skipping unreadable aggregate document at index %d",
                    position,
                    extra={"reason": str(exc).splitlines()[0]},
                )


@lru_cache
def build_default_container(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> MockCosmosContainer:
    settings = get_settings()
    container_name = settings.container_name if name is None else name
    container_path = settings.container_persistence_path if path is None else path
    persistence = Path(container_path) if container_path else None
    return MockCosmosContainer(name=container_name, persistence_path=persistence)
