"""Background task that re-runs the eviction sweep."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace

from deltasync.cleanup import EvictionEngine, SweepStats
from deltasync.models import ListFilter
from deltasync.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_INTERVAL = 3600.0


@dataclass(frozen=True)
class _Settings:
    interval: float
    filters: ListFilter | None


class CleanupScheduler:
    """Runs ``EvictionEngine.sweep`` every ``interval`` seconds.

    The timer is re-armed after each sweep finishes, so slow sweeps push
    later runs back instead of overlapping. Interval and filters can be
    changed while running; the next sweep stays due one interval after the
    previous one, measured with the current interval. A failing sweep is
    logged and the schedule continues.
    """

    def __init__(
        self,
        engine: EvictionEngine,
        interval: float = DEFAULT_INTERVAL,
        filters: ListFilter | None = None,
    ) -> None:
        _check_interval(interval)
        self._engine = engine
        self._settings = _Settings(interval=interval, filters=filters)
        self._task: asyncio.Task[None] | None = None
        self._wakeup = asyncio.Event()
        self._stopping = False

    @property
    def interval(self) -> float:
        return self._settings.interval

    @property
    def filters(self) -> ListFilter | None:
        return self._settings.filters

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the background task. Must be called from a running loop."""
        if self.is_running:
            return
        self._stopping = False
        self._wakeup = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="deltasync-cleanup")
        logger.info("scheduler_started", interval=self._settings.interval)

    async def stop(self) -> None:
        """Stop the task, letting an in-flight sweep finish first."""
        if self._task is None:
            return
        self._stopping = True
        self._wakeup.set()
        task, self._task = self._task, None
        await task
        logger.info("scheduler_stopped")

    def update_interval(self, interval: float) -> None:
        _check_interval(interval)
        self._settings = replace(self._settings, interval=interval)
        self._wakeup.set()
        logger.debug("scheduler_interval_updated", interval=interval)

    def update_filters(self, filters: ListFilter | None) -> None:
        self._settings = replace(self._settings, filters=filters)
        self._wakeup.set()
        logger.debug("scheduler_filters_updated")

    async def run_once(self) -> SweepStats:
        """Sweep immediately with the current filters."""
        return await self._engine.sweep(self._settings.filters)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        last_sweep = loop.time()
        while not self._stopping:
            self._wakeup.clear()
            # next sweep is due one interval after the previous one finished
            remaining = last_sweep + self._settings.interval - loop.time()
            if remaining > 0:
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=remaining)
                    continue
                except asyncio.TimeoutError:
                    pass
            await self._sweep(self._settings.filters)
            last_sweep = loop.time()

    async def _sweep(self, filters: ListFilter | None) -> None:
        try:
            await self._engine.sweep(filters)
        except Exception:
            logger.exception("scheduled_sweep_failed")


def _check_interval(interval: float) -> None:
    if interval <= 0:
        raise ValueError(f"interval must be positive, got {interval!r}")
