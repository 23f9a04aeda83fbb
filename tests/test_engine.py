"""Tests for the DeltaSync facade."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from deltasync.config import SyncConfig
from deltasync.engine import DeltaSync
from deltasync.models import ListFilter, SyncAction


@pytest.fixture
def engine(memory_store):
    return DeltaSync(memory_store, SyncConfig(delta_threshold=2))


class TestContextOperations:
    async def test_write_and_read(self, engine):
        await engine.set("c", {"a": 1})
        await engine.update("c", {"b": 2})
        snapshot = await engine.get("c")
        assert snapshot.state == {"a": 1, "b": 2}
        assert (await engine.sync("c", 1)).action == SyncAction.DELTA
        assert await engine.delete("c") is True
        assert await engine.get("c") is None

    async def test_manager_shares_configuration(self, engine):
        assert engine.manager.config.delta_threshold == 2
        assert engine.manager.store is engine._store


class TestCleanup:
    async def test_cleanup_runs_one_sweep(self, engine):
        for n in range(5):
            await engine.set("c", {"n": n})
        stats = await engine.cleanup()
        assert stats.deltas_trimmed == 3

    async def test_cleanup_passes_filters(self, engine):
        for context_id in ("a", "b"):
            for n in range(4):
                await engine.set(context_id, {"n": n})
        stats = await engine.cleanup(ListFilter(context_id="a"))
        assert stats.deltas_trimmed == 2


class TestSchedulerControl:
    async def test_no_scheduler_by_default(self, engine):
        assert engine.scheduler is None

    async def test_start_and_stop(self, engine):
        scheduler = engine.start_scheduler(interval=60)
        assert scheduler.is_running is True
        assert engine.scheduler is scheduler
        await engine.stop_scheduler()
        assert engine.scheduler is None
        assert scheduler.is_running is False

    async def test_start_again_reconfigures(self, engine):
        first = engine.start_scheduler(interval=60)
        filters = ListFilter(limit=10)
        second = engine.start_scheduler(interval=30, filters=filters)
        assert second is first
        assert second.interval == 30
        assert second.filters == filters
        await engine.stop_scheduler()

    async def test_updates_reach_running_scheduler(self, engine):
        scheduler = engine.start_scheduler(interval=60)
        engine.update_interval(120)
        engine.update_filter_options(ListFilter(offset=5))
        assert scheduler.interval == 120
        assert scheduler.filters == ListFilter(offset=5)
        await engine.stop_scheduler()

    async def test_updates_without_scheduler_raise(self, engine):
        with pytest.raises(RuntimeError):
            engine.update_interval(10)
        with pytest.raises(RuntimeError):
            engine.update_filter_options(None)

    async def test_scheduled_sweeps_trim_history(self, engine, memory_store):
        for n in range(5):
            await engine.set("c", {"n": n})
        engine.start_scheduler(interval=0.01)
        await asyncio.sleep(0.05)
        await engine.stop_scheduler()
        assert [r.version for r in await memory_store.range_deltas("c", 0)] == [4, 5]

    async def test_close_stops_scheduler_and_store(self, memory_store):
        memory_store.close = AsyncMock()
        engine = DeltaSync(memory_store)
        scheduler = engine.start_scheduler(interval=60)
        await engine.close()
        assert scheduler.is_running is False
        memory_store.close.assert_awaited_once()
