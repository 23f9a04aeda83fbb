"""Tests for deltasync.scheduler.CleanupScheduler."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from deltasync.cleanup import SweepStats
from deltasync.models import ListFilter
from deltasync.scheduler import DEFAULT_INTERVAL, CleanupScheduler


@pytest.fixture
def engine():
    mock = MagicMock()
    mock.sweep = AsyncMock(return_value=SweepStats(started_at=0))
    return mock


class TestConstruction:
    def test_defaults(self, engine):
        scheduler = CleanupScheduler(engine)
        assert scheduler.interval == DEFAULT_INTERVAL == 3600.0
        assert scheduler.filters is None
        assert scheduler.is_running is False

    @pytest.mark.parametrize("interval", [0, -1, -0.5])
    def test_non_positive_interval_rejected(self, engine, interval):
        with pytest.raises(ValueError):
            CleanupScheduler(engine, interval=interval)


class TestRunning:
    async def test_sweeps_repeatedly(self, engine):
        filters = ListFilter(limit=10)
        scheduler = CleanupScheduler(engine, interval=0.01, filters=filters)
        scheduler.start()
        assert scheduler.is_running is True
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert engine.sweep.await_count >= 2
        engine.sweep.assert_awaited_with(filters)
        assert scheduler.is_running is False

    async def test_first_sweep_waits_for_interval(self, engine):
        scheduler = CleanupScheduler(engine, interval=60)
        scheduler.start()
        await asyncio.sleep(0.02)
        await scheduler.stop()
        engine.sweep.assert_not_awaited()

    async def test_start_twice_keeps_one_task(self, engine):
        scheduler = CleanupScheduler(engine, interval=60)
        scheduler.start()
        task = scheduler._task
        scheduler.start()
        assert scheduler._task is task
        await scheduler.stop()

    async def test_failing_sweep_does_not_stop_schedule(self, engine):
        engine.sweep.side_effect = RuntimeError("store unavailable")
        scheduler = CleanupScheduler(engine, interval=0.01)
        scheduler.start()
        await asyncio.sleep(0.1)
        assert scheduler.is_running is True
        await scheduler.stop()
        assert engine.sweep.await_count >= 2

    async def test_stop_without_start_is_noop(self, engine):
        await CleanupScheduler(engine).stop()

    async def test_can_restart_after_stop(self, engine):
        scheduler = CleanupScheduler(engine, interval=0.01)
        scheduler.start()
        await scheduler.stop()
        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()
        assert engine.sweep.await_count >= 1


class TestReconfiguration:
    async def test_shorter_interval_takes_effect_immediately(self, engine):
        scheduler = CleanupScheduler(engine, interval=3600)
        scheduler.start()
        await asyncio.sleep(0.01)
        scheduler.update_interval(0.01)
        await asyncio.sleep(0.1)
        await scheduler.stop()

        assert scheduler.interval == 0.01
        assert engine.sweep.await_count >= 1

    async def test_longer_interval_postpones_sweeps(self, engine):
        scheduler = CleanupScheduler(engine, interval=0.05)
        scheduler.start()
        scheduler.update_interval(60)
        await asyncio.sleep(0.1)
        await scheduler.stop()
        engine.sweep.assert_not_awaited()

    async def test_update_filters_applies_to_next_sweep(self, engine):
        scheduler = CleanupScheduler(engine, interval=0.01)
        scheduler.start()
        new_filters = ListFilter(context_id="room:1")
        scheduler.update_filters(new_filters)
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert scheduler.filters == new_filters
        engine.sweep.assert_awaited_with(new_filters)

    async def test_frequent_updates_do_not_postpone_sweeps(self, engine):
        scheduler = CleanupScheduler(engine, interval=0.05)
        scheduler.start()
        for _ in range(20):
            scheduler.update_filters(None)
            scheduler.update_interval(0.05)
            await asyncio.sleep(0.03)
        await scheduler.stop()
        assert engine.sweep.await_count >= 5

    def test_update_interval_validates(self, engine):
        scheduler = CleanupScheduler(engine)
        with pytest.raises(ValueError):
            scheduler.update_interval(0)
        assert scheduler.interval == DEFAULT_INTERVAL


class TestRunOnce:
    async def test_run_once_uses_current_filters(self, engine):
        filters = ListFilter(limit=5)
        scheduler = CleanupScheduler(engine, filters=filters)
        stats = await scheduler.run_once()
        engine.sweep.assert_awaited_once_with(filters)
        assert stats == SweepStats(started_at=0)

    async def test_run_once_propagates_errors(self, engine):
        engine.sweep.side_effect = RuntimeError("boom")
        with pytest.raises(RuntimeError):
            await CleanupScheduler(engine).run_once()
