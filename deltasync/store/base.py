"""Abstract base class for versioned context storage."""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from contextlib import AbstractAsyncContextManager
from typing import Any, TypeVar

from deltasync.delta import Delta
from deltasync.models import DeltaCount, DeltaRecord, ListFilter, Snapshot, SortOrder
from deltasync.utils.time import Clock, SystemClock, TimeUnit

T = TypeVar("T", Snapshot, DeltaRecord, DeltaCount)


class VersionedStore(ABC):
    """Persists one snapshot per context plus its version-ordered delta history.

    Implementations stamp ``inserted_at`` themselves using the injected clock.
    Version numbers are chosen by the caller and never reused per context.
    All deletes are idempotent.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        time_unit: TimeUnit = TimeUnit.SECOND,
    ) -> None:
        self._clock = clock or SystemClock()
        self._time_unit = time_unit

    @property
    def time_unit(self) -> TimeUnit:
        return self._time_unit

    def now(self) -> int:
        """Current time in the store's unit."""
        return self._clock.now(self._time_unit)

    @abstractmethod
    def lock(self, context_id: Any) -> AbstractAsyncContextManager[Any]:
        """Critical section for a read-modify-write of one context."""

    # Snapshots

    @abstractmethod
    async def get_snapshot(self, context_id: Any) -> Snapshot | None:
        """Load the current snapshot. Returns None if not found."""

    @abstractmethod
    async def put_snapshot(self, context_id: Any, state: dict[str, Any], version: int) -> Snapshot:
        """Replace the snapshot for ``context_id``."""

    @abstractmethod
    async def delete_snapshot(self, context_id: Any) -> bool:
        """Delete the snapshot only. Returns whether one existed."""

    # Delta history

    @abstractmethod
    async def append_delta(self, context_id: Any, delta: Delta, version: int) -> DeltaRecord:
        """Append a delta under ``version``."""

    @abstractmethod
    async def range_deltas(self, context_id: Any, min_version_exclusive: int) -> list[DeltaRecord]:
        """All deltas with ``version > min_version_exclusive``, ascending."""

    @abstractmethod
    async def delete_deltas(self, context_id: Any) -> int:
        """Delete the whole delta history. Returns the number removed."""

    @abstractmethod
    async def delete_deltas_older_than(self, context_id: Any, cutoff: int) -> int:
        """Delete deltas with ``inserted_at < cutoff``. Returns the number removed."""

    @abstractmethod
    async def trim_deltas_keep_latest(self, context_id: Any, keep: int) -> int:
        """Keep only the ``keep`` highest versions. Returns the number removed."""

    # Enumeration

    @abstractmethod
    async def list_snapshots(self, filters: ListFilter | None = None) -> list[Snapshot]:
        """Snapshots ordered by context id."""

    @abstractmethod
    async def list_deltas(self, filters: ListFilter | None = None) -> list[DeltaRecord]:
        """Deltas ordered by (context id, version)."""

    @abstractmethod
    async def list_delta_counts(self, filters: ListFilter | None = None) -> list[DeltaCount]:
        """History length of every context that has deltas, ordered by context id."""

    # Composite operations

    async def write(
        self, context_id: Any, state: dict[str, Any], delta: Delta, version: int
    ) -> tuple[Snapshot, DeltaRecord]:
        """Store a new snapshot and its delta under the same version.

        Backends with a transaction primitive should override this so both
        writes land together.
        """
        snapshot = await self.put_snapshot(context_id, state, version)
        record = await self.append_delta(context_id, delta, version)
        return snapshot, record

    async def close(self) -> None:
        """Release backend resources."""


def context_sort_key(context_id: Any) -> tuple[int, Any]:
    """Sort integers numerically before everything else ordered as text."""
    if isinstance(context_id, int) and not isinstance(context_id, bool):
        return (0, context_id)
    return (1, str(context_id))


def apply_filters(
    items: Iterable[T],
    filters: ListFilter | None,
    sort_key: Callable[[T], Any],
) -> list[T]:
    """Filter, order and paginate already-loaded entries.

    Shared by the backends so enumeration behaves identically everywhere.
    """
    filters = filters or ListFilter()
    selected = [item for item in items if _matches(item, filters)]
    selected.sort(key=sort_key, reverse=filters.order == SortOrder.DESC)
    start = filters.offset
    stop = None if filters.limit is None else start + filters.limit
    return selected[start:stop]


def _matches(item: Any, filters: ListFilter) -> bool:
    if filters.context_id is not None and item.context_id != filters.context_id:
        return False
    version = getattr(item, "version", None)
    if filters.version is not None and version != filters.version:
        return False
    inserted_at = getattr(item, "inserted_at", None)
    if inserted_at is not None:
        if filters.inserted_since is not None and inserted_at < filters.inserted_since:
            return False
        if filters.inserted_before is not None and inserted_at >= filters.inserted_before:
            return False
    return True
