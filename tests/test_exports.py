"""Tests for deltasync public API exports."""
import deltasync


class TestPublicExports:
    def test_delta_engine_importable(self):
        from deltasync import Change, diff, merge

        assert Change is not None
        assert callable(diff)
        assert callable(merge)

    def test_stores_importable(self):
        from deltasync import MemoryStore, RedisStore, VersionedStore

        assert issubclass(MemoryStore, VersionedStore)
        assert issubclass(RedisStore, VersionedStore)

    def test_engine_importable(self):
        from deltasync import DeltaSync

        assert DeltaSync is not None

    def test_errors_share_base_class(self):
        from deltasync import (
            ContextNotFoundError,
            DeltaSyncError,
            InvalidStateError,
            NoExportCallbackError,
            NoRestoreProviderError,
        )

        for error in (
            ContextNotFoundError,
            InvalidStateError,
            NoExportCallbackError,
            NoRestoreProviderError,
        ):
            assert issubclass(error, DeltaSyncError)

    def test_all_names_resolve(self):
        for name in deltasync.__all__:
            assert getattr(deltasync, name) is not None

    def test_all_contains_all_names(self):
        expected = {
            "Action",
            "Change",
            "diff",
            "merge",
            "apply_delta",
            "revert_delta",
            "DeltaFormatter",
            "DefaultFormatter",
            "Snapshot",
            "DeltaRecord",
            "DeltaCount",
            "WriteResult",
            "SyncAction",
            "SyncResult",
            "RestoredContext",
            "ListFilter",
            "SortOrder",
            "SyncConfig",
            "SYNC_CONFIGS",
            "get_config",
            "VersionedStore",
            "MemoryStore",
            "RedisStore",
            "create_store",
            "ContextManager",
            "EvictionEngine",
            "SweepStats",
            "CleanupScheduler",
            "DeltaSync",
            "Clock",
            "SystemClock",
            "TimeUnit",
            "DeltaSyncError",
            "ContextNotFoundError",
            "MissingCollaboratorError",
            "NoExportCallbackError",
            "NoRestoreProviderError",
            "InvalidStateError",
        }
        assert set(deltasync.__all__) == expected

    def test_all_has_exactly_38_names(self):
        assert len(deltasync.__all__) == 38
