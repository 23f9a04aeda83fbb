"""Backend selection for deltasync."""
from __future__ import annotations

import os

from deltasync.store.base import VersionedStore
from deltasync.store.memory_store import MemoryStore
from deltasync.store.redis_store import RedisStore
from deltasync.utils.time import Clock, TimeUnit

DEFAULT_BACKEND = "memory"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"

BACKENDS = ("memory", "redis")


def create_store(
    backend: str | None = None,
    *,
    url: str | None = None,
    prefix: str = "deltasync",
    clock: Clock | None = None,
    time_unit: TimeUnit = TimeUnit.SECOND,
) -> VersionedStore:
    """Create the configured VersionedStore.

    Resolution order for the backend name:
      1. Explicit ``backend`` parameter
      2. ``DELTASYNC_BACKEND`` environment variable
      3. ``"memory"``

    For the Redis backend the URL resolves the same way through ``url``,
    ``DELTASYNC_REDIS_URL`` and ``redis://localhost:6379/0``.

    Raises:
        ValueError: the backend name is not one of ``BACKENDS``.
    """
    name = (backend or os.environ.get("DELTASYNC_BACKEND") or DEFAULT_BACKEND).lower()
    if name == "memory":
        return MemoryStore(clock=clock, time_unit=time_unit)
    if name == "redis":
        resolved_url = url or os.environ.get("DELTASYNC_REDIS_URL") or DEFAULT_REDIS_URL
        return RedisStore.from_url(
            resolved_url, prefix=prefix, clock=clock, time_unit=time_unit
        )
    raise ValueError(f"Unknown backend {name!r}; expected one of {BACKENDS}")
