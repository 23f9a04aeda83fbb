"""Retention sweep for stale contexts and delta history."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from deltasync.config import SyncConfig
from deltasync.models import ListFilter
from deltasync.store.base import VersionedStore
from deltasync.utils.logging import get_logger
from deltasync.utils.time import convert

logger = get_logger(__name__)


@dataclass
class SweepStats:
    """Counts from one sweep."""

    started_at: int
    contexts_deleted: int = 0
    deltas_expired: int = 0
    deltas_trimmed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at,
            "contexts_deleted": self.contexts_deleted,
            "deltas_expired": self.deltas_expired,
            "deltas_trimmed": self.deltas_trimmed,
        }


class EvictionEngine:
    """Deletes data that fell out of the retention policy.

    Three independent passes run in order:
    - contexts whose snapshot is older than ``context_ttl`` lose their
      snapshot and history (only with ``context_auto_delete``)
    - deltas older than ``delta_ttl`` are removed
    - histories longer than ``delta_threshold`` are trimmed to the newest

    Every delete is idempotent, so overlapping sweeps are safe.
    """

    def __init__(self, store: VersionedStore, config: SyncConfig | None = None) -> None:
        self._store = store
        self._config = config or SyncConfig()

    async def sweep(self, filters: ListFilter | None = None) -> SweepStats:
        """Run all enabled passes once.

        Args:
            filters: Pagination/predicates applied when enumerating the
                store, e.g. ``ListFilter(limit=100)`` to bound one run.
        """
        now = self._store.now()
        stats = SweepStats(started_at=now)

        await self._cleanup_contexts(now, filters, stats)
        await self._cleanup_deltas_by_time(now, filters, stats)
        await self._cleanup_deltas_by_threshold(filters, stats)

        logger.info("sweep_completed", **stats.to_dict())
        return stats

    async def _cleanup_contexts(
        self, now: int, filters: ListFilter | None, stats: SweepStats
    ) -> None:
        ttl = self._store_ttl(self._config.context_ttl)
        if not self._config.context_auto_delete or ttl is None:
            return
        cutoff = now - ttl
        for snapshot in await self._store.list_snapshots(filters):
            if snapshot.inserted_at >= cutoff:
                continue
            async with self._store.lock(snapshot.context_id):
                # a write may have refreshed the context since it was listed
                current = await self._store.get_snapshot(snapshot.context_id)
                if current is not None and current.inserted_at >= cutoff:
                    continue
                await self._store.delete_snapshot(snapshot.context_id)
                await self._store.delete_deltas(snapshot.context_id)
            stats.contexts_deleted += 1
            logger.debug("context_evicted", context_id=snapshot.context_id)

    async def _cleanup_deltas_by_time(
        self, now: int, filters: ListFilter | None, stats: SweepStats
    ) -> None:
        ttl = self._store_ttl(self._config.delta_ttl)
        if ttl is None:
            return
        cutoff = now - ttl
        stale_contexts: dict[Any, None] = {}
        for record in await self._store.list_deltas(filters):
            if record.inserted_at < cutoff:
                stale_contexts.setdefault(record.context_id)
        for context_id in stale_contexts:
            removed = await self._store.delete_deltas_older_than(context_id, cutoff)
            stats.deltas_expired += removed
            logger.debug("deltas_expired", context_id=context_id, removed=removed)

    async def _cleanup_deltas_by_threshold(
        self, filters: ListFilter | None, stats: SweepStats
    ) -> None:
        threshold = self._config.delta_threshold
        if threshold is None:
            return
        for entry in await self._store.list_delta_counts(filters):
            if entry.count <= threshold:
                continue
            removed = await self._store.trim_deltas_keep_latest(entry.context_id, threshold)
            stats.deltas_trimmed += removed
            logger.debug("deltas_trimmed", context_id=entry.context_id, removed=removed)

    def _store_ttl(self, ttl: int | None) -> int | None:
        # config TTLs are in config.time_unit, timestamps in the store's unit
        if ttl is None:
            return None
        return convert(ttl, self._config.time_unit, self._store.time_unit)
