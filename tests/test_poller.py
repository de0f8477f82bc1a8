"""Tests for the dashboard poller state machine."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from cli.client import FetchError
from cli.poller import DashboardPoller, PollerState
from cli.render import ChartHandle


def _payload(location: str, avg: float = 32.0) -> Dict[str, Any]:
    return {
        "success": True,
        "location": location,
        "dataPoints": 1,
        "data": [{"location": location, "windowEnd": "2025-01-15T12:10:00Z", "avgIceThickness": avg}],
    }


class FakeClient:
    def __init__(self) -> None:
        self.fail: set[str] = set()
        self.calls: List[str] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self.failing_locations: set[str] = set()

    async def get_latest(self) -> Dict[str, Any]:
        self.calls.append("latest")
        if "latest" in self.fail:
            raise FetchError("latest down")
        return {"success": True, "timestamp": "t", "data": [{"location": "NAC", "safetyStatus": "Safe"}]}

    async def get_status(self) -> Dict[str, Any]:
        self.calls.append("status")
        if "status" in self.fail:
            raise FetchError("status down")
        return {"success": True, "overallStatus": "Safe", "breakdown": {}}

    async def get_history(self, location: str, limit: Optional[int] = None) -> Dict[str, Any]:
        self.calls.append(f"history:{location}")
        gate = self.gates.get(location)
        if gate is not None:
            await gate.wait()
        if "history" in self.fail:
            raise FetchError("history down")
        if location in self.failing_locations:
            raise FetchError(f"history {location} down")
        return _payload(location)


class RecordingRenderer:
    def __init__(self) -> None:
        self.cards: List[List[Dict[str, Any]]] = []
        self.statuses: List[Dict[str, Any]] = []
        self.charts: List[ChartHandle] = []
        self.degraded: List[str] = []
        self.fallbacks = 0

    def render_cards(self, records: List[Dict[str, Any]]) -> None:
        self.cards.append(records)

    def render_status(self, payload: Dict[str, Any]) -> None:
        self.statuses.append(payload)

    def open_chart(self, location: str, records: List[Dict[str, Any]]) -> ChartHandle:
        chart = ChartHandle(location, records)
        self.charts.append(chart)
        return chart

    def render_degraded(self, reason: str) -> None:
        self.degraded.append(reason)

    def render_fallback(self) -> None:
        self.fallbacks += 1


def _poller(client: FakeClient, renderer: RecordingRenderer, interval: float = 30.0) -> DashboardPoller:
    return DashboardPoller(client, renderer, default_location="Dow's Lake", interval=interval)


async def _settle() -> None:
    for _ in range(3):
        await asyncio.sleep(0)


def test_start_loads_everything_and_displays() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        assert poller.phase is PollerState.idle
        await poller.start()
        assert poller.phase is PollerState.displaying
        assert poller.state.refresh_handle is not None
        await poller.stop()

    asyncio.run(scenario())

    assert sorted(client.calls) == ["history:Dow's Lake", "latest", "status"]
    assert len(renderer.cards) == 1
    assert renderer.charts[0].location == "Dow's Lake"
    assert renderer.charts[0].released is True
    assert poller.phase is PollerState.idle


def test_latest_failure_does_not_block_history() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    client.fail = {"latest"}
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        await poller.stop()

    asyncio.run(scenario())

    assert renderer.degraded == ["latest down"]
    assert len(renderer.charts) == 1
    assert renderer.statuses
    assert renderer.fallbacks == 0


def test_failure_before_any_data_shows_fallback() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    client.fail = {"latest", "status", "history"}
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        assert poller.phase is PollerState.degraded
        await poller.stop()

    asyncio.run(scenario())

    assert renderer.fallbacks == 1
    assert renderer.cards == []


def test_degraded_keeps_last_known_good_and_recovers() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        good_cards = poller.state.latest

        client.fail = {"latest", "status", "history"}
        await poller.refresh()
        assert poller.phase is PollerState.degraded
        assert poller.state.latest == good_cards
        assert renderer.cards[-1] == good_cards
        assert poller.state.current_chart is renderer.charts[0]
        assert renderer.charts[0].released is False

        client.fail = set()
        await poller.refresh()
        assert poller.phase is PollerState.displaying
        await poller.stop()

    asyncio.run(scenario())

    assert len(renderer.degraded) == 1
    assert renderer.charts[0].released is True


def test_select_location_refetches_only_history() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        client.calls.clear()
        await poller.select_location("NAC")
        await poller.stop()

    asyncio.run(scenario())

    assert client.calls == ["history:NAC"]
    assert [chart.location for chart in renderer.charts] == ["Dow's Lake", "NAC"]
    assert renderer.charts[0].released is True


def test_stale_history_response_is_discarded() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        client.gates = {"Fifth Avenue": asyncio.Event(), "NAC": asyncio.Event()}

        first = asyncio.create_task(poller.select_location("Fifth Avenue"))
        await _settle()
        second = asyncio.create_task(poller.select_location("NAC"))
        await _settle()

        client.gates["NAC"].set()
        await second
        client.gates["Fifth Avenue"].set()
        await first

        assert poller.state.selected_location == "NAC"
        assert poller.state.current_chart is not None
        assert poller.state.current_chart.location == "NAC"
        assert poller.state.history == _payload("NAC")["data"]
        await poller.stop()

    asyncio.run(scenario())

    assert [chart.location for chart in renderer.charts] == ["Dow's Lake", "NAC"]


def test_stale_history_failure_does_not_degrade() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        gate = asyncio.Event()
        client.gates = {"Fifth Avenue": gate}
        client.failing_locations = {"Fifth Avenue"}

        first = asyncio.create_task(poller.select_location("Fifth Avenue"))
        await _settle()
        await poller.select_location("NAC")
        assert poller.phase is PollerState.displaying

        gate.set()
        await first

        assert poller.phase is PollerState.displaying
        assert poller.state.current_chart is not None
        assert poller.state.current_chart.location == "NAC"
        await poller.stop()

    asyncio.run(scenario())

    assert renderer.degraded == []


def test_stale_success_does_not_mask_newer_failure() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        gate = asyncio.Event()
        client.gates = {"Fifth Avenue": gate}
        client.failing_locations = {"NAC"}

        first = asyncio.create_task(poller.select_location("Fifth Avenue"))
        await _settle()
        await poller.select_location("NAC")
        assert poller.phase is PollerState.degraded

        gate.set()
        await first
        assert poller.phase is PollerState.degraded
        await poller.stop()

    asyncio.run(scenario())

    assert renderer.degraded == ["history NAC down"]
    assert [chart.location for chart in renderer.charts] == ["Dow's Lake"]


def test_responses_after_stop_are_ignored() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        gate = asyncio.Event()
        client.gates = {"NAC": gate}

        pending = asyncio.create_task(poller.select_location("NAC"))
        await _settle()
        await poller.stop()

        gate.set()
        await pending

        assert poller.phase is PollerState.idle
        assert poller.state.current_chart is None

    asyncio.run(scenario())

    assert [chart.location for chart in renderer.charts] == ["Dow's Lake"]
    assert all(chart.released for chart in renderer.charts)


def test_failure_after_stop_is_ignored() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        gate = asyncio.Event()
        client.gates = {"NAC": gate}
        client.failing_locations = {"NAC"}

        pending = asyncio.create_task(poller.select_location("NAC"))
        await _settle()
        await poller.stop()

        gate.set()
        await pending
        assert poller.phase is PollerState.idle

    asyncio.run(scenario())

    assert renderer.degraded == []


def test_late_timer_history_for_same_location_is_discarded() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer)

    async def scenario() -> None:
        await poller.start()
        gate = asyncio.Event()
        client.gates = {"Dow's Lake": gate}
        slow_tick = asyncio.create_task(poller.refresh())
        await _settle()

        client.gates = {}
        await poller.select_location("Dow's Lake")
        newest_chart = poller.state.current_chart

        gate.set()
        await slow_tick
        assert poller.state.current_chart is newest_chart
        assert poller.phase is PollerState.displaying
        await poller.stop()

    asyncio.run(scenario())

    assert len(renderer.charts) == 2
    assert client.calls.count("latest") == 2


def test_refresh_loop_ticks_on_interval() -> None:
    client, renderer = FakeClient(), RecordingRenderer()
    poller = _poller(client, renderer, interval=0.01)

    async def scenario() -> None:
        await poller.start(max_ticks=2)
        await poller.wait()
        await poller.stop()

    asyncio.run(scenario())

    assert client.calls.count("latest") == 3
    assert client.calls.count("status") == 3
    assert len(renderer.charts) == 3
    assert all(chart.released for chart in renderer.charts)


def test_start_twice_is_rejected() -> None:
    poller = _poller(FakeClient(), RecordingRenderer())

    async def scenario() -> None:
        await poller.start()
        try:
            with pytest.raises(RuntimeError):
                await poller.start()
        finally:
            await poller.stop()

    asyncio.run(scenario())
