"""Versioned state writes and client synchronization."""
from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from deltasync.config import SyncConfig
from deltasync.delta import Delta, diff, merge
from deltasync.errors import (
    ContextNotFoundError,
    InvalidStateError,
    NoExportCallbackError,
    NoRestoreProviderError,
)
from deltasync.models import Snapshot, SyncAction, SyncResult, WriteResult
from deltasync.store.base import VersionedStore
from deltasync.utils.logging import get_logger
from deltasync.utils.maps import deep_update

logger = get_logger(__name__)


class ContextManager:
    """Owns version numbers and decides what each client should receive.

    Writes diff the new state against the stored snapshot and persist the
    snapshot and its delta under the next version. Reads compare a client's
    version with the current one and answer with the full context, a
    coalesced delta, or no change.
    """

    def __init__(self, store: VersionedStore, config: SyncConfig | None = None) -> None:
        self._store = store
        self._config = config or SyncConfig()

    @property
    def store(self) -> VersionedStore:
        return self._store

    @property
    def config(self) -> SyncConfig:
        return self._config

    async def get(self, context_id: Any) -> Snapshot | None:
        """Return the current snapshot, or None if the context does not exist."""
        snapshot = await self._store.get_snapshot(context_id)
        if snapshot is None:
            logger.debug("context_not_found", context_id=context_id)
        return snapshot

    async def set(self, context_id: Any, new_state: Mapping[str, Any]) -> WriteResult:
        """Replace the state of a context, recording the delta.

        A state equal to the current one is a no-op: nothing is written and
        the returned delta is empty.
        """
        if not isinstance(new_state, Mapping):
            raise InvalidStateError(
                "new_state must be a mapping", details={"type": type(new_state).__name__}
            )
        return await self._write(context_id, lambda _old: dict(new_state))

    async def update(self, context_id: Any, changes: Mapping[str, Any]) -> WriteResult:
        """Deep-merge ``changes`` into the current state and record the delta."""
        if not isinstance(changes, Mapping):
            raise InvalidStateError(
                "changes must be a mapping", details={"type": type(changes).__name__}
            )
        return await self._write(context_id, lambda old: deep_update(old, changes))

    async def delete(self, context_id: Any) -> bool:
        """Delete the snapshot and the whole delta history.

        Idempotent. Returns False when there was nothing to delete.
        """
        async with self._store.lock(context_id):
            had_snapshot = await self._store.delete_snapshot(context_id)
            removed_deltas = await self._store.delete_deltas(context_id)
        found = had_snapshot or removed_deltas > 0
        if found:
            logger.info("context_deleted", context_id=context_id, deltas=removed_deltas)
        else:
            logger.debug("context_delete_not_found", context_id=context_id)
        return found

    async def sync(self, context_id: Any, client_version: int | None) -> SyncResult:
        """Decide what a client that last saw ``client_version`` should receive.

        Raises:
            ContextNotFoundError: the context does not exist.
        """
        snapshot = await self._store.get_snapshot(context_id)
        if snapshot is None:
            raise ContextNotFoundError(context_id)

        action = self._sync_action(client_version, snapshot.version)
        logger.debug(
            "sync_action",
            context_id=context_id,
            client_version=client_version,
            version=snapshot.version,
            action=action.value,
        )

        if action == SyncAction.FULL_CONTEXT:
            return SyncResult(SyncAction.FULL_CONTEXT, snapshot.version, snapshot=snapshot)
        if action == SyncAction.NO_CHANGE:
            return SyncResult(SyncAction.NO_CHANGE, snapshot.version)
        return await self._sync_deltas_or_fallback(snapshot, client_version)

    async def export(self, context_id: Any) -> Snapshot:
        """Hand the current snapshot to the configured export callback.

        Raises:
            ContextNotFoundError: the context does not exist.
            NoExportCallbackError: no export callback is configured.
        """
        snapshot = await self._store.get_snapshot(context_id)
        if snapshot is None:
            raise ContextNotFoundError(context_id)
        callback = self._config.export_callback
        if callback is None:
            raise NoExportCallbackError()
        await callback(snapshot)
        logger.info("context_exported", context_id=context_id, version=snapshot.version)
        return snapshot

    async def restore(self, context_id: Any) -> Snapshot:
        """Overwrite the snapshot with the one held by the restore provider.

        No delta is computed or recorded, and the existing delta history is
        discarded, so clients behind the restored version get the full
        context on their next sync.

        Raises:
            NoRestoreProviderError: no restore provider is configured.
            ContextNotFoundError: the provider has nothing for this id.
        """
        provider = self._config.restore_provider
        if provider is None:
            raise NoRestoreProviderError()
        restored = await provider(context_id)
        if restored is None:
            raise ContextNotFoundError(context_id)
        if not isinstance(restored.state, Mapping):
            raise InvalidStateError(
                "Restored state must be a mapping",
                details={"context_id": context_id, "type": type(restored.state).__name__},
            )
        async with self._store.lock(context_id):
            # existing deltas describe the replaced timeline
            dropped = await self._store.delete_deltas(context_id)
            snapshot = await self._store.put_snapshot(
                context_id, dict(restored.state), restored.version
            )
        logger.info(
            "context_restored",
            context_id=context_id,
            version=snapshot.version,
            dropped_deltas=dropped,
        )
        return snapshot

    def format_delta(self, delta: Delta, context_id: Any, version: int | None = None) -> Any:
        """Render a delta with the configured formatter."""
        metadata: dict[str, Any] = {"context_id": context_id}
        if version is not None:
            metadata["version"] = version
        return self._config.delta_formatter.format(delta, metadata)

    async def _write(
        self,
        context_id: Any,
        build_state: Callable[[dict[str, Any]], dict[str, Any]],
    ) -> WriteResult:
        async with self._store.lock(context_id):
            current = await self._store.get_snapshot(context_id)
            if current is None:
                old_state: dict[str, Any] = {}
                old_version = 0
            else:
                old_state, old_version = current.state, current.version

            new_state = build_state(old_state)
            delta = diff(old_state, new_state)
            if not delta:
                logger.debug("context_unchanged", context_id=context_id, version=old_version)
                return WriteResult(
                    context_id=context_id,
                    state=old_state,
                    version=old_version,
                    inserted_at=current.inserted_at if current is not None else None,
                )

            snapshot, record = await self._store.write(
                context_id, new_state, delta, old_version + 1
            )

        logger.info("context_written", context_id=context_id, version=snapshot.version)
        return WriteResult(
            context_id=context_id,
            state=snapshot.state,
            version=snapshot.version,
            delta=record.delta,
            inserted_at=snapshot.inserted_at,
        )

    async def _sync_deltas_or_fallback(
        self, snapshot: Snapshot, client_version: int
    ) -> SyncResult:
        records = await self._store.range_deltas(snapshot.context_id, client_version)
        if (
            not records
            or records[0].version != client_version + 1
            or records[-1].version != snapshot.version
        ):
            logger.warning(
                "delta_history_incomplete",
                context_id=snapshot.context_id,
                client_version=client_version,
                version=snapshot.version,
                first_version=records[0].version if records else None,
                last_version=records[-1].version if records else None,
            )
            return SyncResult(SyncAction.FULL_CONTEXT, snapshot.version, snapshot=snapshot)

        merged = merge(record.delta for record in records)
        return SyncResult(SyncAction.DELTA, snapshot.version, delta=merged)

    def _sync_action(self, client_version: int | None, current_version: int) -> SyncAction:
        threshold = self._config.delta_threshold
        if client_version is None:
            return SyncAction.FULL_CONTEXT
        if threshold is not None and client_version < current_version - threshold:
            return SyncAction.FULL_CONTEXT
        if client_version >= current_version:
            return SyncAction.NO_CHANGE
        return SyncAction.DELTA
