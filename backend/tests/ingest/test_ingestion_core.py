"""Tests for bounded concurrent ingestion and load generations."""

from __future__ import annotations

import asyncio

import pytest

from ingest.config import IngestionConfig
from ingest.core import IngestionController
from ingest.store import MemoryFrameStore
from series.aggregator import SeriesAggregator


def _frames(make_frame, count: int, series_id: str = "S"):
    return {f"id-{i}": make_frame(series_id, i, series_number=1, identity=f"id-{i}") for i in range(count)}


def _controller(store, aggregator, **config):
    return IngestionController(
        store,
        aggregator.absorb,
        config=IngestionConfig(**config),
        on_reset=aggregator.reset,
    )


def test_load_respects_limit_and_settles(make_frame):
    frames = _frames(make_frame, 5)
    store = MemoryFrameStore(frames)
    aggregator = SeriesAggregator()
    controller = _controller(store, aggregator)

    result = asyncio.run(controller.load(list(frames), limit=3))

    assert result.loaded_count == 3
    assert result.target_count == 3
    assert controller.loaded_count == 3
    assert controller.loading is False
    assert controller.images_remaining == 0
    assert controller.progress().unrequested_count == 2
    assert store.fetch_count == 3
    assert aggregator.image_count == 3


@pytest.mark.parametrize("limit", [None, 0, -1, 99])
def test_non_positive_or_large_limit_loads_everything(make_frame, limit):
    frames = _frames(make_frame, 4)
    aggregator = SeriesAggregator()
    controller = _controller(MemoryFrameStore(frames), aggregator)

    result = asyncio.run(controller.load(list(frames), limit=limit))

    assert result.loaded_count == 4
    assert controller.progress().unrequested_count == 0


def test_configured_max_images_applies_without_override(make_frame):
    frames = _frames(make_frame, 6)
    aggregator = SeriesAggregator()
    controller = _controller(MemoryFrameStore(frames), aggregator, max_images=2)

    result = asyncio.run(controller.load(list(frames)))

    assert result.loaded_count == 2


def test_completions_are_absorbed_in_arrival_order(make_frame):
    frames = _frames(make_frame, 4)
    # later identities finish first
    delays = {"id-0": 0.04, "id-1": 0.03, "id-2": 0.02, "id-3": 0.01}
    arrivals: list[str] = []

    def on_frame(frame):
        arrivals.append(frame.image_identity)

    controller = IngestionController(MemoryFrameStore(frames, delays=delays), on_frame)
    asyncio.run(controller.load(list(frames)))

    assert arrivals == ["id-3", "id-2", "id-1", "id-0"]


def test_concurrent_fetches_are_bounded(make_frame):
    frames = _frames(make_frame, 12)
    store = MemoryFrameStore(frames, delays={key: 0.01 for key in frames})
    aggregator = SeriesAggregator()
    controller = _controller(store, aggregator, max_concurrent_fetches=3)

    asyncio.run(controller.load(list(frames)))

    assert store.peak_in_flight == 3
    assert aggregator.image_count == 12


def test_failures_are_reported_and_do_not_block_completion(make_frame):
    frames = _frames(make_frame, 4)
    store = MemoryFrameStore(frames, failures={"id-1": "boom", "id-3": "corrupt"})
    aggregator = SeriesAggregator()
    controller = _controller(store, aggregator)

    result = asyncio.run(controller.load(list(frames)))

    assert controller.loading is False
    assert result.loaded_count == 2
    assert sorted(result.failed_identities) == ["id-1", "id-3"]
    assert result.settled_count == 4
    assert aggregator.image_count == 2
    assert all("id-1" != frame.image_identity for frame in aggregator.get(0).images)
    assert controller.images_remaining == 0


def test_unexpected_store_errors_become_fetch_failures(make_frame):
    class BrokenStore(MemoryFrameStore):
        async def fetch(self, identity):
            if identity == "id-0":
                raise OSError("disk gone")
            return await super().fetch(identity)

    frames = _frames(make_frame, 2)
    controller = IngestionController(BrokenStore(frames), lambda frame: None)

    result = asyncio.run(controller.load(list(frames)))

    assert result.failed_identities == ["id-0"]
    assert "OSError" in result.failures[0].message


def test_frame_is_aggregated_before_counters_move(make_frame):
    frames = _frames(make_frame, 3)
    seen: list[tuple[int, int]] = []
    aggregator = SeriesAggregator()
    controller: IngestionController

    def on_frame(frame):
        seen.append((controller.loaded_count, aggregator.image_count))
        aggregator.absorb(frame)

    controller = IngestionController(MemoryFrameStore(frames), on_frame)
    asyncio.run(controller.load(list(frames)))

    assert seen == [(0, 0), (1, 1), (2, 2)]


def test_progress_callback_reports_settled_counts(make_frame):
    frames = _frames(make_frame, 3)
    reports: list[tuple[int, int, bool]] = []
    controller = IngestionController(MemoryFrameStore(frames, failures={"id-2": "bad"}), lambda frame: None)

    async def progress(settled, target):
        reports.append((settled, target, controller.loading))

    asyncio.run(controller.load(list(frames), progress=progress))

    assert reports[0] == (0, 3, True)
    assert [settled for settled, _, _ in reports] == [0, 1, 2, 3]
    assert reports[-1][2] is False


def test_empty_identity_list_is_not_loading():
    controller = IngestionController(MemoryFrameStore({}), lambda frame: None)

    result = asyncio.run(controller.load([]))

    assert result.target_count == 0
    assert controller.loading is False
    assert controller.progress().percent == 100


def test_new_load_supersedes_previous_generation(make_frame):
    slow = {f"old-{i}": make_frame("OLD", i, series_number=1, identity=f"old-{i}") for i in range(3)}
    fresh = {f"new-{i}": make_frame("NEW", i, series_number=1, identity=f"new-{i}") for i in range(2)}
    store = MemoryFrameStore({**slow, **fresh}, delays={key: 0.05 for key in slow})
    aggregator = SeriesAggregator()
    controller = _controller(store, aggregator)

    async def scenario():
        first = asyncio.create_task(controller.load(list(slow)))
        await asyncio.sleep(0.01)
        assert controller.loading is True
        second = await controller.load(list(fresh))
        return await first, second

    first, second = asyncio.run(scenario())

    assert first.superseded is True
    assert second.superseded is False
    assert second.generation == first.generation + 1
    assert [series.series_id for series in aggregator.series] == ["NEW"]
    assert aggregator.image_count == 2
    assert controller.loaded_count == 2
    assert controller.loading is False
    assert store.clear_count == 2


def test_cancel_abandons_in_flight_fetches(make_frame):
    frames = _frames(make_frame, 3)
    store = MemoryFrameStore(frames, delays={key: 0.05 for key in frames})
    aggregator = SeriesAggregator()
    controller = _controller(store, aggregator)

    async def scenario():
        task = asyncio.create_task(controller.load(list(frames)))
        await asyncio.sleep(0.01)
        controller.cancel()
        return await task

    result = asyncio.run(scenario())

    assert result.superseded is True
    assert controller.loading is False
    assert aggregator.image_count == 0


def test_errors_from_frame_handler_propagate(make_frame):
    frames = _frames(make_frame, 2)

    def on_frame(frame):
        raise RuntimeError("aggregation bug")

    controller = IngestionController(MemoryFrameStore(frames), on_frame)

    with pytest.raises(RuntimeError, match="aggregation bug"):
        asyncio.run(controller.load(list(frames)))
    assert controller.loading is False
