"""Unified entry point wiring the manager, eviction sweep and scheduler."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from deltasync.cleanup import EvictionEngine, SweepStats
from deltasync.config import SyncConfig
from deltasync.delta import Delta
from deltasync.manager import ContextManager
from deltasync.models import ListFilter, Snapshot, SyncResult, WriteResult
from deltasync.scheduler import DEFAULT_INTERVAL, CleanupScheduler
from deltasync.store.base import VersionedStore


class DeltaSync:
    """Facade over one store and one configuration.

    Example:
        engine = DeltaSync(MemoryStore())
        await engine.set("call:123", {"status": "active"})
        result = await engine.sync("call:123", client_version)
    """

    def __init__(self, store: VersionedStore, config: SyncConfig | None = None) -> None:
        self._config = config or SyncConfig()
        self._store = store
        self._manager = ContextManager(store, self._config)
        self._eviction = EvictionEngine(store, self._config)
        self._scheduler: CleanupScheduler | None = None

    @property
    def manager(self) -> ContextManager:
        return self._manager

    @property
    def scheduler(self) -> CleanupScheduler | None:
        return self._scheduler

    # Contexts

    async def set(self, context_id: Any, state: Mapping[str, Any]) -> WriteResult:
        return await self._manager.set(context_id, state)

    async def update(self, context_id: Any, changes: Mapping[str, Any]) -> WriteResult:
        return await self._manager.update(context_id, changes)

    async def get(self, context_id: Any) -> Snapshot | None:
        return await self._manager.get(context_id)

    async def delete(self, context_id: Any) -> bool:
        return await self._manager.delete(context_id)

    async def sync(self, context_id: Any, client_version: int | None) -> SyncResult:
        return await self._manager.sync(context_id, client_version)

    async def export(self, context_id: Any) -> Snapshot:
        return await self._manager.export(context_id)

    async def restore(self, context_id: Any) -> Snapshot:
        return await self._manager.restore(context_id)

    def format_delta(self, delta: Delta, context_id: Any, version: int | None = None) -> Any:
        return self._manager.format_delta(delta, context_id, version)

    # Cleanup

    async def cleanup(self, filters: ListFilter | None = None) -> SweepStats:
        """Run one eviction sweep now."""
        return await self._eviction.sweep(filters)

    def start_scheduler(
        self,
        interval: float = DEFAULT_INTERVAL,
        filters: ListFilter | None = None,
    ) -> CleanupScheduler:
        """Start periodic cleanup; a running scheduler is reconfigured instead."""
        if self._scheduler is not None and self._scheduler.is_running:
            self._scheduler.update_interval(interval)
            self._scheduler.update_filters(filters)
            return self._scheduler
        self._scheduler = CleanupScheduler(self._eviction, interval=interval, filters=filters)
        self._scheduler.start()
        return self._scheduler

    def update_interval(self, interval: float) -> None:
        self._require_scheduler().update_interval(interval)

    def update_filter_options(self, filters: ListFilter | None) -> None:
        self._require_scheduler().update_filters(filters)

    async def stop_scheduler(self) -> None:
        if self._scheduler is not None:
            await self._scheduler.stop()
            self._scheduler = None

    async def close(self) -> None:
        """Stop the scheduler and release the store."""
        await self.stop_scheduler()
        await self._store.close()

    def _require_scheduler(self) -> CleanupScheduler:
        if self._scheduler is None:
            raise RuntimeError("Cleanup scheduler is not running")
        return self._scheduler
