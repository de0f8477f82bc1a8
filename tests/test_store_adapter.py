"""Unit tests for the aggregate store adapter."""

from __future__ import annotations

import pytest

from datastore.mock_cosmos import MockCosmosContainer
from services.errors import StoreUnavailableError
from services.store_adapter import AggregateStoreAdapter
from conftest import FailingContainer, build_record


def test_fetch_latest_returns_newest_window(container: MockCosmosContainer) -> None:
    for minutes in (0, 10, 5):
        container.put_item(build_record(minutes=minutes))
    adapter = AggregateStoreAdapter(container)

    latest = adapter.fetch_latest("Dow's Lake")

    assert latest is not None
    assert latest.window_end.minute == 10


def test_fetch_latest_without_data_is_none(container: MockCosmosContainer) -> None:
    adapter = AggregateStoreAdapter(container)

    assert adapter.fetch_latest("NAC") is None


def test_fetch_history_returns_newest_windows_oldest_first(container: MockCosmosContainer) -> None:
    for minutes in (0, 5, 10):
        container.put_item(build_record(minutes=minutes))
    adapter = AggregateStoreAdapter(container)

    history = adapter.fetch_history("Dow's Lake", 2)

    assert [record.window_end.minute for record in history] == [5, 10]


@pytest.mark.parametrize(("requested", "expected"), [(0, 1), (-4, 1), (7, 7), (900, 25)])
def test_fetch_history_clamps_limit(container: MockCosmosContainer, requested, expected) -> None:
    adapter = AggregateStoreAdapter(container, max_limit=25)
    recorder = FailingContainer(container, failing=set())
    adapter.container = recorder

    adapter.fetch_history("Dow's Lake", requested)

    assert adapter.clamp_limit(requested) == expected
    assert recorder.calls == [("Dow's Lake", expected)]


def test_fetch_history_drops_out_of_order_windows(make_record) -> None:
    class UnorderedContainer:
        def query_top_n(self, location, n, descending=True):
            return [
                make_record(minutes=10),
                make_record(minutes=10),
                make_record(minutes=5),
                make_record(location="NAC", minutes=3),
            ][:n]

    adapter = AggregateStoreAdapter(UnorderedContainer())

    history = adapter.fetch_history("Dow's Lake", 4)

    assert [record.window_end.minute for record in history] == [5, 10]


def test_store_faults_are_wrapped(container: MockCosmosContainer) -> None:
    adapter = AggregateStoreAdapter(FailingContainer(container))

    with pytest.raises(StoreUnavailableError) as excinfo:
        adapter.fetch_latest("Fifth Avenue")

    assert excinfo.value.location == "Fifth Avenue"
    assert isinstance(excinfo.value.__cause__, ConnectionError)

    with pytest.raises(StoreUnavailableError):
        adapter.fetch_history("Fifth Avenue", 3)
