"""Periodic dashboard refresh loop with stale-response protection."""

from __future__ import annotations

import asyncio
import itertools
import logging
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Dict, List, Optional, Protocol

from cli.client import FetchError
from cli.render import ChartHandle

logger = logging.getLogger(__name__)


class PollerState(str, Enum):
    idle = "idle"
    loading = "loading"
    displaying = "displaying"
    refreshing = "refreshing"
    degraded = "degraded"


class DashboardClient(Protocol):
    async def get_latest(self) -> Dict[str, Any]: ...

    async def get_status(self) -> Dict[str, Any]: ...

    async def get_history(self, location: str, limit: Optional[int] = None) -> Dict[str, Any]: ...


class DashboardRenderer(Protocol):
    def render_cards(self, records: List[Dict[str, Any]]) -> None: ...

    def render_status(self, payload: Dict[str, Any]) -> None: ...

    def open_chart(self, location: str, records: List[Dict[str, Any]]) -> ChartHandle: ...

    def render_degraded(self, reason: str) -> None: ...

    def render_fallback(self) -> None: ...


@dataclass
class DashboardState:
    """Everything one poller owns: selection, chart, timer and last good data."""

    selected_location: str
    current_chart: Optional[ChartHandle] = None
    refresh_handle: Optional[asyncio.Task[None]] = None
    latest: Optional[List[Dict[str, Any]]] = None
    status: Optional[Dict[str, Any]] = None
    history: Optional[List[Dict[str, Any]]] = None


class DashboardPoller:
    """Fetches latest, status and history on a fixed interval.

    Each fetch is tagged with a generation number from one increasing counter.
    A response is applied only when its generation is still the newest issued
    for that kind of fetch, so a late answer never overwrites a newer one.
    """

    def __init__(
        self,
        client: DashboardClient,
        renderer: DashboardRenderer,
        default_location: str,
        interval: float = 30.0,
    ) -> None:
        self.client = client
        self.renderer = renderer
        self.interval = interval
        self.state = DashboardState(selected_location=default_location)
        self.phase = PollerState.idle
        self._generations = itertools.count(1)
        self._issued: Dict[str, int] = {"latest": 0, "status": 0, "history": 0}

    async def start(self, max_ticks: Optional[int] = None) -> None:
        """Initial load followed by the scheduled refresh loop."""
        if self.phase is not PollerState.idle:
            raise RuntimeError("Poller already started.")
        self.phase = PollerState.loading
        await self._run_fetches(
            self._load_latest(),
            self._load_status(),
            self._load_history(self.state.selected_location),
        )
        self.state.refresh_handle = asyncio.create_task(self._refresh_loop(max_ticks))

    async def wait(self) -> None:
        handle = self.state.refresh_handle
        if handle is not None:
            await handle

    async def refresh(self) -> None:
        self.phase = PollerState.refreshing
        await self._run_fetches(
            self._load_latest(),
            self._load_status(),
            self._load_history(self.state.selected_location),
        )

    async def select_location(self, location: str) -> None:
        """Switch the charted location; only history is re-fetched."""
        self.state.selected_location = location
        self.phase = PollerState.refreshing
        await self._run_fetches(self._load_history(location))

    async def stop(self) -> None:
        handle = self.state.refresh_handle
        self.state.refresh_handle = None
        if handle is not None and not handle.done():
            handle.cancel()
            with suppress(asyncio.CancelledError):
                await handle
        # Requests still in flight belong to the stopped session.
        for kind in self._issued:
            self._issue(kind)
        self._release_chart()
        self.phase = PollerState.idle

    async def _refresh_loop(self, max_ticks: Optional[int]) -> None:
        ticks = itertools.count(1)
        while max_ticks is None or next(ticks) <= max_ticks:
            await asyncio.sleep(self.interval)
            await self.refresh()

    async def _run_fetches(self, *fetches: Awaitable[bool]) -> None:
        results = await asyncio.gather(*fetches, return_exceptions=True)
        failures: list[FetchError] = []
        for result in results:
            if isinstance(result, FetchError):
                failures.append(result)
            elif isinstance(result, BaseException):
                raise result
        if failures:
            self._degrade(str(failures[0]))
        elif any(results):
            self.phase = PollerState.displaying

    def _issue(self, kind: str) -> int:
        generation = next(self._generations)
        self._issued[kind] = generation
        return generation

    def _is_current(self, kind: str, generation: int) -> bool:
        if self._issued[kind] == generation:
            return True
        logger.debug(
            "Discarding stale %s response",
            kind,
            extra={"generation": generation},
        )
        return False

    async def _fetch(self, kind: str, request: Awaitable[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        """Await ``request`` and return its payload, or None when superseded.

        Failures are correlated like successes: a ``FetchError`` from a
        superseded request is dropped instead of degrading the dashboard.
        """
        generation = self._issue(kind)
        try:
            payload = await request
        except FetchError:
            if self._is_current(kind, generation):
                raise
            return None
        if not self._is_current(kind, generation):
            return None
        return payload

    async def _load_latest(self) -> bool:
        payload = await self._fetch("latest", self.client.get_latest())
        if payload is None:
            return False
        records = list(payload.get("data") or [])
        self.state.latest = records
        self.renderer.render_cards(records)
        return True

    async def _load_status(self) -> bool:
        payload = await self._fetch("status", self.client.get_status())
        if payload is None:
            return False
        self.state.status = payload
        self.renderer.render_status(payload)
        return True

    async def _load_history(self, location: str) -> bool:
        payload = await self._fetch("history", self.client.get_history(location))
        if payload is None:
            return False
        if location != self.state.selected_location:
            logger.debug("Discarding history for deselected location", extra={"location": location})
            return False
        records = list(payload.get("data") or [])
        self.state.history = records
        self._release_chart()
        self.state.current_chart = self.renderer.open_chart(location, records)
        return True

    def _release_chart(self) -> None:
        chart = self.state.current_chart
        self.state.current_chart = None
        if chart is not None:
            chart.release()

    def _degrade(self, reason: str) -> None:
        logger.warning("Dashboard fetch failed", extra={"reason": reason})
        self.phase = PollerState.degraded
        self.renderer.render_degraded(reason)
        if self.state.latest is None and self.state.history is None:
            self.renderer.render_fallback()
            return
        if self.state.latest is not None:
            self.renderer.render_cards(self.state.latest)
        if self.state.status is not None:
            self.renderer.render_status(self.state.status)
        if self.state.current_chart is not None:
            self.state.current_chart.draw()
