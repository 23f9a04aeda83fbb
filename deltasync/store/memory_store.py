"""In-process implementation of VersionedStore."""
from __future__ import annotations

import asyncio
import copy
import weakref
from contextlib import AbstractAsyncContextManager
from typing import Any

from deltasync.delta import Delta
from deltasync.models import DeltaCount, DeltaRecord, ListFilter, Snapshot
from deltasync.store.base import VersionedStore, apply_filters, context_sort_key
from deltasync.utils.time import Clock, TimeUnit


class MemoryStore(VersionedStore):
    """Keeps snapshots and delta histories in dictionaries.

    Each context's history is a dict keyed by version; versions are appended
    in increasing order so insertion order is version order. Values are deep
    copied on the way in and out so callers never alias stored state.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        time_unit: TimeUnit = TimeUnit.SECOND,
    ) -> None:
        super().__init__(clock=clock, time_unit=time_unit)
        self._snapshots: dict[Any, Snapshot] = {}
        self._deltas: dict[Any, dict[int, DeltaRecord]] = {}
        # entries vanish once no caller holds or awaits the lock
        self._locks: weakref.WeakValueDictionary[Any, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock(self, context_id: Any) -> AbstractAsyncContextManager[Any]:
        lock = self._locks.get(context_id)
        if lock is None:
            lock = self._locks[context_id] = asyncio.Lock()
        return lock

    async def get_snapshot(self, context_id: Any) -> Snapshot | None:
        snapshot = self._snapshots.get(context_id)
        return copy.deepcopy(snapshot) if snapshot is not None else None

    async def put_snapshot(self, context_id: Any, state: dict[str, Any], version: int) -> Snapshot:
        snapshot = Snapshot(
            context_id=context_id,
            state=copy.deepcopy(state),
            version=version,
            inserted_at=self.now(),
        )
        self._snapshots[context_id] = snapshot
        return copy.deepcopy(snapshot)

    async def delete_snapshot(self, context_id: Any) -> bool:
        return self._snapshots.pop(context_id, None) is not None

    async def append_delta(self, context_id: Any, delta: Delta, version: int) -> DeltaRecord:
        record = DeltaRecord(
            context_id=context_id,
            delta=copy.deepcopy(delta),
            version=version,
            inserted_at=self.now(),
        )
        history = self._deltas.setdefault(context_id, {})
        history[version] = record
        if len(history) > 1 and version < max(history):
            self._deltas[context_id] = dict(sorted(history.items()))
        return copy.deepcopy(record)

    async def range_deltas(self, context_id: Any, min_version_exclusive: int) -> list[DeltaRecord]:
        history = self._deltas.get(context_id, {})
        return [
            copy.deepcopy(record)
            for version, record in history.items()
            if version > min_version_exclusive
        ]

    async def delete_deltas(self, context_id: Any) -> int:
        return len(self._deltas.pop(context_id, {}))

    async def delete_deltas_older_than(self, context_id: Any, cutoff: int) -> int:
        history = self._deltas.get(context_id)
        if not history:
            return 0
        stale = [v for v, record in history.items() if record.inserted_at < cutoff]
        for version in stale:
            del history[version]
        self._drop_if_empty(context_id)
        return len(stale)

    async def trim_deltas_keep_latest(self, context_id: Any, keep: int) -> int:
        history = self._deltas.get(context_id)
        if not history:
            return 0
        versions = list(history)
        excess = versions[: max(len(versions) - max(keep, 0), 0)]
        for version in excess:
            del history[version]
        self._drop_if_empty(context_id)
        return len(excess)

    async def list_snapshots(self, filters: ListFilter | None = None) -> list[Snapshot]:
        return copy.deepcopy(
            apply_filters(
                self._snapshots.values(),
                filters,
                lambda s: context_sort_key(s.context_id),
            )
        )

    async def list_deltas(self, filters: ListFilter | None = None) -> list[DeltaRecord]:
        records = [r for history in self._deltas.values() for r in history.values()]
        return copy.deepcopy(
            apply_filters(
                records,
                filters,
                lambda r: (context_sort_key(r.context_id), r.version),
            )
        )

    async def list_delta_counts(self, filters: ListFilter | None = None) -> list[DeltaCount]:
        counts = [
            DeltaCount(context_id=context_id, count=len(history))
            for context_id, history in self._deltas.items()
            if history
        ]
        return apply_filters(counts, filters, lambda c: context_sort_key(c.context_id))

    def _drop_if_empty(self, context_id: Any) -> None:
        if not self._deltas.get(context_id):
            self._deltas.pop(context_id, None)
