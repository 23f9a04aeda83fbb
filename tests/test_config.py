"""Tests for SyncConfig and presets."""
from deltasync.formatter import DefaultFormatter
from deltasync.utils.time import TimeUnit


class TestSyncConfig:
    """Tests for SyncConfig dataclass."""

    def test_create_default_config(self):
        from deltasync.config import SyncConfig

        config = SyncConfig()
        assert config.delta_threshold == 100
        assert config.context_auto_delete is False
        assert config.context_ttl is None
        assert config.delta_ttl is None
        assert config.time_unit == TimeUnit.SECOND
        assert config.export_callback is None
        assert config.restore_provider is None
        assert isinstance(config.delta_formatter, DefaultFormatter)

    def test_create_custom_config(self):
        from deltasync.config import SyncConfig

        async def export(snapshot):
            return None

        config = SyncConfig(
            delta_threshold=5,
            context_auto_delete=True,
            context_ttl=60_000,
            time_unit=TimeUnit.MILLISECOND,
            export_callback=export,
        )
        assert config.delta_threshold == 5
        assert config.context_auto_delete is True
        assert config.context_ttl == 60_000
        assert config.time_unit == TimeUnit.MILLISECOND
        assert config.export_callback is export

    def test_formatters_are_not_shared(self):
        from deltasync.config import SyncConfig

        assert SyncConfig().delta_formatter is not SyncConfig().delta_formatter


class TestSyncConfigPresets:
    """Tests for predefined sync config presets."""

    def test_presets_exist(self):
        from deltasync.config import SYNC_CONFIGS

        assert set(SYNC_CONFIGS) == {"realtime", "session", "archive"}

    def test_realtime_preset_evicts_aggressively(self):
        from deltasync.config import SYNC_CONFIGS

        realtime = SYNC_CONFIGS["realtime"]
        assert realtime.delta_threshold == 50
        assert realtime.context_auto_delete is True
        assert realtime.delta_ttl < realtime.context_ttl

    def test_archive_preset_keeps_contexts(self):
        from deltasync.config import SYNC_CONFIGS

        archive = SYNC_CONFIGS["archive"]
        # Archived contexts are only ever removed explicitly
        assert archive.context_auto_delete is False
        assert archive.delta_threshold >= 1000

    def test_get_config_returns_preset(self):
        from deltasync.config import get_config

        config = get_config("session")
        assert config.delta_threshold == 100
        assert config.context_ttl == 24 * 3600

    def test_get_config_returns_default_for_unknown(self):
        from deltasync.config import get_config

        config = get_config("unknown")
        assert config.delta_threshold == 100
        assert config.context_auto_delete is False

    def test_get_config_with_none_returns_default(self):
        from deltasync.config import get_config

        config = get_config(None)
        assert config.delta_ttl is None
