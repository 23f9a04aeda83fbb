"""deltasync: versioned context state with delta synchronization."""
from deltasync.cleanup import EvictionEngine, SweepStats
from deltasync.config import SYNC_CONFIGS, SyncConfig, get_config
from deltasync.defaults import create_store
from deltasync.delta import Action, Change, apply_delta, diff, merge, revert_delta
from deltasync.engine import DeltaSync
from deltasync.errors import (
    ContextNotFoundError,
    DeltaSyncError,
    InvalidStateError,
    MissingCollaboratorError,
    NoExportCallbackError,
    NoRestoreProviderError,
)
from deltasync.formatter import DefaultFormatter, DeltaFormatter
from deltasync.manager import ContextManager
from deltasync.models import (
    DeltaCount,
    DeltaRecord,
    ListFilter,
    RestoredContext,
    Snapshot,
    SortOrder,
    SyncAction,
    SyncResult,
    WriteResult,
)
from deltasync.scheduler import CleanupScheduler
from deltasync.store.base import VersionedStore
from deltasync.store.memory_store import MemoryStore
from deltasync.store.redis_store import RedisStore
from deltasync.utils.time import Clock, SystemClock, TimeUnit

__all__ = [
    # Delta engine
    "Action",
    "Change",
    "diff",
    "merge",
    "apply_delta",
    "revert_delta",
    "DeltaFormatter",
    "DefaultFormatter",
    # Models
    "Snapshot",
    "DeltaRecord",
    "DeltaCount",
    "WriteResult",
    "SyncAction",
    "SyncResult",
    "RestoredContext",
    "ListFilter",
    "SortOrder",
    # Configuration
    "SyncConfig",
    "SYNC_CONFIGS",
    "get_config",
    # Storage
    "VersionedStore",
    "MemoryStore",
    "RedisStore",
    "create_store",
    # Synchronization and cleanup
    "ContextManager",
    "EvictionEngine",
    "SweepStats",
    "CleanupScheduler",
    "DeltaSync",
    # Time
    "Clock",
    "SystemClock",
    "TimeUnit",
    # Errors
    "DeltaSyncError",
    "ContextNotFoundError",
    "MissingCollaboratorError",
    "NoExportCallbackError",
    "NoRestoreProviderError",
    "InvalidStateError",
]
