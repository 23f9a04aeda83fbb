"""Redis-backed implementation of VersionedStore."""
from __future__ import annotations

import json
import ssl
from contextlib import AbstractAsyncContextManager
from typing import Any

from redis.asyncio import Redis

from deltasync.delta import Delta, delta_from_dict, delta_to_dict
from deltasync.models import DeltaCount, DeltaRecord, ListFilter, Snapshot
from deltasync.store.base import VersionedStore, apply_filters, context_sort_key
from deltasync.utils.time import Clock, TimeUnit


class RedisStore(VersionedStore):
    """Stores snapshots as hashes and delta histories as sorted sets.

    Key formats:
    - Snapshot: {prefix}:snapshot:{context_id} (hash: context_id, state,
      version, inserted_at)
    - Deltas: {prefix}:deltas:{context_id} (sorted set scored by version,
      members are JSON delta records)
    - Lock: {prefix}:lock:{context_id}

    States must be JSON-serializable with string keys. Context ids are
    rendered with ``str()`` in key names, so ``5`` and ``"5"`` share keys.
    """

    def __init__(
        self,
        redis_client: Redis,
        prefix: str = "deltasync",
        ttl_seconds: int | None = None,
        clock: Clock | None = None,
        time_unit: TimeUnit = TimeUnit.SECOND,
        lock_timeout: float = 10.0,
        lock_blocking_timeout: float | None = 5.0,
    ) -> None:
        super().__init__(clock=clock, time_unit=time_unit)
        self._redis = redis_client
        self._prefix = prefix
        self._ttl_seconds = ttl_seconds
        self._lock_timeout = lock_timeout
        self._lock_blocking_timeout = lock_blocking_timeout

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        prefix: str = "deltasync",
        ttl_seconds: int | None = None,
        clock: Clock | None = None,
        time_unit: TimeUnit = TimeUnit.SECOND,
        ssl_cert_reqs: str | None = None,
        **redis_kwargs: Any,
    ) -> RedisStore:
        """Create a store from a Redis URL.

        Supports ``redis://`` and ``rediss://`` (TLS) schemes.

        Args:
            url: Redis connection URL, e.g. ``redis://localhost:6379/0``.
            prefix: Key prefix for Redis keys.
            ttl_seconds: Optional key expiry refreshed on every write.
            clock: Time source for ``inserted_at``.
            time_unit: Unit of ``inserted_at``.
            ssl_cert_reqs: Pass ``"none"`` to skip certificate verification
                on ``rediss://`` endpoints with self-signed certs.
            **redis_kwargs: Extra keyword arguments forwarded to
                ``Redis.from_url()``, e.g. ``password``.
        """
        kwargs: dict[str, Any] = {**redis_kwargs}

        if url.startswith("rediss://"):
            ssl_ctx = ssl.create_default_context()
            if ssl_cert_reqs == "none":
                ssl_ctx.check_hostname = False
                ssl_ctx.verify_mode = ssl.CERT_NONE
            kwargs.setdefault("ssl", True)
            kwargs.setdefault("ssl_context", ssl_ctx)

        client = Redis.from_url(url, **kwargs)
        return cls(
            client,
            prefix=prefix,
            ttl_seconds=ttl_seconds,
            clock=clock,
            time_unit=time_unit,
        )

    async def close(self) -> None:
        """Close the underlying Redis connection."""
        await self._redis.aclose()

    def _snapshot_key(self, context_id: Any) -> str:
        return f"{self._prefix}:snapshot:{context_id}"

    def _deltas_key(self, context_id: Any) -> str:
        return f"{self._prefix}:deltas:{context_id}"

    def _lock_key(self, context_id: Any) -> str:
        return f"{self._prefix}:lock:{context_id}"

    def lock(self, context_id: Any) -> AbstractAsyncContextManager[Any]:
        return self._redis.lock(
            self._lock_key(context_id),
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_blocking_timeout,
        )

    # Snapshots

    async def get_snapshot(self, context_id: Any) -> Snapshot | None:
        raw_id, state, version, inserted_at = await self._redis.hmget(
            self._snapshot_key(context_id),
            ["context_id", "state", "version", "inserted_at"],
        )
        if state is None:
            return None
        return Snapshot(
            context_id=json.loads(raw_id),
            state=json.loads(state),
            version=int(version),
            inserted_at=int(inserted_at),
        )

    async def put_snapshot(self, context_id: Any, state: dict[str, Any], version: int) -> Snapshot:
        snapshot = Snapshot(context_id, _decoded(state), version, self.now())
        async with self._redis.pipeline(transaction=True) as pipe:
            self._queue_snapshot(pipe, snapshot)
            await pipe.execute()
        return snapshot

    async def delete_snapshot(self, context_id: Any) -> bool:
        return bool(await self._redis.delete(self._snapshot_key(context_id)))

    # Delta history

    async def append_delta(self, context_id: Any, delta: Delta, version: int) -> DeltaRecord:
        record = DeltaRecord(context_id, _decoded_delta(delta), version, self.now())
        async with self._redis.pipeline(transaction=True) as pipe:
            self._queue_delta(pipe, record)
            await pipe.execute()
        return record

    async def range_deltas(self, context_id: Any, min_version_exclusive: int) -> list[DeltaRecord]:
        members = await self._redis.zrangebyscore(
            self._deltas_key(context_id), f"({min_version_exclusive}", "+inf"
        )
        return [DeltaRecord.from_dict(json.loads(member)) for member in members]

    async def delete_deltas(self, context_id: Any) -> int:
        key = self._deltas_key(context_id)
        async with self._redis.pipeline(transaction=True) as pipe:
            pipe.zcard(key)
            pipe.delete(key)
            count, _ = await pipe.execute()
        return int(count)

    async def delete_deltas_older_than(self, context_id: Any, cutoff: int) -> int:
        key = self._deltas_key(context_id)
        members = await self._redis.zrange(key, 0, -1)
        stale = [m for m in members if int(json.loads(m)["inserted_at"]) < cutoff]
        if not stale:
            return 0
        return int(await self._redis.zrem(key, *stale))

    async def trim_deltas_keep_latest(self, context_id: Any, keep: int) -> int:
        # ranks counted from the end always leave the newest ``keep`` entries
        stop = -(keep + 1) if keep > 0 else -1
        return int(await self._redis.zremrangebyrank(self._deltas_key(context_id), 0, stop))

    # Enumeration

    async def list_snapshots(self, filters: ListFilter | None = None) -> list[Snapshot]:
        snapshots = []
        async for key in self._redis.scan_iter(match=f"{self._prefix}:snapshot:*"):
            raw_id = await self._redis.hget(key, "context_id")
            if raw_id is None:
                continue
            snapshot = await self.get_snapshot(json.loads(raw_id))
            if snapshot is not None:
                snapshots.append(snapshot)
        return apply_filters(snapshots, filters, lambda s: context_sort_key(s.context_id))

    async def list_deltas(self, filters: ListFilter | None = None) -> list[DeltaRecord]:
        records = []
        async for key in self._redis.scan_iter(match=f"{self._prefix}:deltas:*"):
            members = await self._redis.zrange(key, 0, -1)
            records.extend(DeltaRecord.from_dict(json.loads(m)) for m in members)
        return apply_filters(
            records,
            filters,
            lambda r: (context_sort_key(r.context_id), r.version),
        )

    async def list_delta_counts(self, filters: ListFilter | None = None) -> list[DeltaCount]:
        counts = []
        async for key in self._redis.scan_iter(match=f"{self._prefix}:deltas:*"):
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.zcard(key)
                pipe.zrange(key, 0, 0)
                count, first = await pipe.execute()
            if not count or not first:
                continue
            context_id = json.loads(first[0])["context_id"]
            counts.append(DeltaCount(context_id=context_id, count=int(count)))
        return apply_filters(counts, filters, lambda c: context_sort_key(c.context_id))

    # Composite operations

    async def write(
        self, context_id: Any, state: dict[str, Any], delta: Delta, version: int
    ) -> tuple[Snapshot, DeltaRecord]:
        inserted_at = self.now()
        snapshot = Snapshot(context_id, _decoded(state), version, inserted_at)
        record = DeltaRecord(context_id, _decoded_delta(delta), version, inserted_at)
        async with self._redis.pipeline(transaction=True) as pipe:
            self._queue_snapshot(pipe, snapshot)
            self._queue_delta(pipe, record)
            await pipe.execute()
        return snapshot, record

    def _queue_snapshot(self, pipe: Any, snapshot: Snapshot) -> None:
        key = self._snapshot_key(snapshot.context_id)
        pipe.hset(
            key,
            mapping={
                "context_id": json.dumps(snapshot.context_id),
                "state": json.dumps(snapshot.state),
                "version": snapshot.version,
                "inserted_at": snapshot.inserted_at,
            },
        )
        if self._ttl_seconds is not None:
            pipe.expire(key, self._ttl_seconds)

    def _queue_delta(self, pipe: Any, record: DeltaRecord) -> None:
        key = self._deltas_key(record.context_id)
        member = json.dumps(record.to_dict())
        # a version is stored at most once
        pipe.zremrangebyscore(key, record.version, record.version)
        pipe.zadd(key, {member: record.version})
        if self._ttl_seconds is not None:
            pipe.expire(key, self._ttl_seconds)


def _decoded(value: Any) -> Any:
    """Return ``value`` as a later read would see it after JSON storage."""
    return json.loads(json.dumps(value))


def _decoded_delta(delta: Delta) -> Delta:
    return delta_from_dict(_decoded(delta_to_dict(delta)))
