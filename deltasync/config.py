"""Synchronization configuration and presets."""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from deltasync.formatter import DefaultFormatter, DeltaFormatter
from deltasync.models import RestoredContext, Snapshot
from deltasync.utils.time import TimeUnit

ExportCallback = Callable[[Snapshot], Awaitable[None]]
RestoreProvider = Callable[[Any], Awaitable[RestoredContext | None]]


@dataclass
class SyncConfig:
    """Configuration for context synchronization and eviction.

    TTLs are expressed in ``time_unit``; the eviction sweep converts them to
    the unit the store uses for ``inserted_at``.
    """

    # Version distance beyond which clients get a full context; also the
    # number of deltas kept per context by the eviction sweep.
    delta_threshold: int | None = 100

    # Eviction
    context_auto_delete: bool = False
    context_ttl: int | None = None
    delta_ttl: int | None = None
    time_unit: TimeUnit = TimeUnit.SECOND

    # Collaborators
    export_callback: ExportCallback | None = None
    restore_provider: RestoreProvider | None = None
    delta_formatter: DeltaFormatter = field(default_factory=DefaultFormatter)


# Preset configurations for common workloads
SYNC_CONFIGS: dict[str, SyncConfig] = {
    "realtime": SyncConfig(
        delta_threshold=50,
        context_auto_delete=True,
        context_ttl=6 * 3600,
        delta_ttl=3600,
    ),
    "session": SyncConfig(
        delta_threshold=100,
        context_auto_delete=True,
        context_ttl=24 * 3600,
        delta_ttl=6 * 3600,
    ),
    "archive": SyncConfig(
        delta_threshold=1000,
        context_auto_delete=False,
        delta_ttl=7 * 24 * 3600,
    ),
}

_DEFAULT_CONFIG = SyncConfig()


def get_config(name: str | None) -> SyncConfig:
    """Get a sync config by name.

    Args:
        name: Preset name ("realtime", "session", "archive") or None.

    Returns:
        The requested SyncConfig, or the default if name is unknown.
    """
    if name is None:
        return _DEFAULT_CONFIG
    return SYNC_CONFIGS.get(name, _DEFAULT_CONFIG)
